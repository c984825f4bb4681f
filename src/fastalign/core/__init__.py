"""
Core, pure algorithms: CIGAR parsing and gapped sequence materialization.
"""
