class NotesError(Exception):
    """Base class for note-generation failures."""


class DocumentParseError(NotesError):
    """The uploaded buffer could not be read as a PDF."""


class ClassificationError(NotesError):
    """The delegated classifier returned nothing usable."""


class RenderError(NotesError):
    """Laying out one notes document failed."""
