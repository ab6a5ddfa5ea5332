"""Error kinds raised by family tree operations."""


class FamilyTreeError(Exception):
    """Base class for recoverable, user-correctable tree errors."""


class NotFound(FamilyTreeError, LookupError):
    """A referenced tree, person or family does not exist in the snapshot."""

    def __init__(self, kind: str, entity_id: str | None):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} not found: {entity_id!r}")


class InvalidReference(FamilyTreeError, ValueError):
    """A partner or child id does not resolve to a person in the same tree."""

    def __init__(self, field: str, entity_id: str):
        self.field = field
        self.entity_id = entity_id
        super().__init__(f"{field} references unknown person {entity_id!r}")
