"""Natural-language search of Mimecast blocked, held and rejected email."""

__version__ = "1.0.0"
