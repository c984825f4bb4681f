"""
Quick multiple sequence alignment against a reference using minimap2.

Every query sequence is aligned to a single reference and rewritten as a gapped sequence spanning the full reference,
so the output FASTA can be read as a multiple sequence alignment.
"""
__version__ = '0.1.0'


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class FastalignError(Exception): pass
class FastalignWarning(Warning): pass


# Public API -----------------------------------------------------------------------------------------------------------
from fastalign.core.cigar import Cigar, CigarOp, CigarOperation, CigarError, CigarParseError, CigarBoundsError
from fastalign.core.gapped import materialize, GAP
from fastalign.containers.record import Record, GappedRecord, Reference, UnknownContigError
from fastalign.io.fasta import FastaReader, FastaWriter
from fastalign.external import Minimap2, AlignerConfig, AlignmentHit, AlignerError
from fastalign.pipeline import Pipeline, PipelineConfig, AlignmentError, PipelineError, NonPrimaryAlignmentWarning
