"""Exceptions raised by the technology graph engine."""


class TechGraphError(Exception):
    """Base class for technology graph errors."""


class NotFoundError(TechGraphError, KeyError):
    """An id does not resolve to a known technology."""

    def __init__(self, tech_id: str):
        super().__init__(tech_id)
        self.tech_id = tech_id

    def __str__(self) -> str:
        return f"Unknown technology: {self.tech_id}"


class DuplicateIdError(TechGraphError):
    """Two technology records share the same id."""

    def __init__(self, tech_id: str, sources: tuple[str | None, str | None] = (None, None)):
        self.tech_id = tech_id
        self.sources = sources
        first, second = (source or "base game" for source in sources)
        super().__init__(f"Duplicate technology id {tech_id!r} ({first} / {second})")


class MalformedRecordError(TechGraphError, ValueError):
    """A catalog record cannot be turned into a Technology."""


class MalformedGraphWarning(UserWarning):
    """
    Non-fatal diagnostic found while walking the graph.

    kind is "cycle" when tech_id lists reference as a prerequisite and
    reference (transitively) requires tech_id, or "dangling" when reference
    is not a known technology.
    """

    CYCLE = "cycle"
    DANGLING = "dangling"

    def __init__(self, kind: str, tech_id: str, reference: str):
        self.kind = kind
        self.tech_id = tech_id
        self.reference = reference
        if kind == self.CYCLE:
            message = f"Cycle: {tech_id} -> {reference} closes a loop"
        else:
            message = f"Dangling prerequisite: {tech_id} -> {reference}"
        super().__init__(message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MalformedGraphWarning):
            return NotImplemented
        return (self.kind, self.tech_id, self.reference) == (
            other.kind,
            other.tech_id,
            other.reference,
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.tech_id, self.reference))
