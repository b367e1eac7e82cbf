"""
Exceptions raised while reconciling SAML group mappings
"""

from typing import List, Optional


class SAMLGroupMappingError(Exception):
    """Base class for all SAML group mapping errors."""


class MappingAlreadyExistsError(SAMLGroupMappingError):
    """The mapping is already present remotely and should be imported instead."""


class MappingNotFoundError(SAMLGroupMappingError):
    """No remote mapping matches the local identity."""


class InvalidImportIDError(SAMLGroupMappingError):
    """The import identifier does not have the expected format."""


class ResourceFieldError(SAMLGroupMappingError):
    """A value could not be assigned to a field of the local resource."""

    def __init__(self, field: str, message: str):
        super().__init__(f"failed to set {field}: {message}")
        self.field = field


class WizRequestError(SAMLGroupMappingError):
    """
    A request to the Wiz API failed.
    Carries every error message returned for the request, plus the resource
    kind and operation tags it was issued for.
    """

    def __init__(self, errors: List[str], resource: Optional[str] = None, operation: Optional[str] = None):
        self.errors = list(errors)
        self.resource = resource
        self.operation = operation
        prefix = f"{resource} {operation}: " if resource and operation else ""
        super().__init__(prefix + "; ".join(self.errors))
