"""
Containers for sequence records and the flattened reference.
"""
