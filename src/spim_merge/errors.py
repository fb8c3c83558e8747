"""Exceptions raised while merging datasets."""


class MergeError(Exception):
    """Base class for failures that abort a merge."""


class EmptyAttributeSetError(MergeError, ValueError):
    """An id range was requested for an attribute kind with no instances."""


class MalformedViewSetupError(MergeError, ValueError):
    """A view-setup carries more than one attribute of the same kind."""


class UnresolvedViewSetupMappingError(MergeError, KeyError):
    """A source view-setup id has no counterpart in the merged dataset."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class PersistenceError(MergeError, OSError):
    """The merged dataset could not be written."""


__all__ = [
    "MergeError",
    "EmptyAttributeSetError",
    "MalformedViewSetupError",
    "UnresolvedViewSetupMappingError",
    "PersistenceError",
]
