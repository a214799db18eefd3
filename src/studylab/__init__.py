"""studylab: SM-2 flashcard scheduling with a pluggable card store."""

from studylab.consts import VERSION

__version__ = VERSION
