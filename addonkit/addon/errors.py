"""
Addon Error Taxonomy.

Every failure raised by the addon lifecycle core derives from AddonError so
callers can catch broadly, while each concrete type names the condition that
was not met so an operator can be shown a specific remedy.
"""


class AddonError(Exception):
    """
    Base exception for addon-related errors.

    Attributes:
        operation: Lifecycle operation that failed (e.g. "install"), if any
        addon_id: Addon the failure concerns, if any
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        addon_id: str | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.addon_id = addon_id


class ConstraintError(AddonError):
    """Raised when a version or constraint string is malformed."""

    pass


class ManifestError(AddonError):
    """Raised when a raw manifest cannot be turned into a descriptor."""

    pass


class NotFoundError(AddonError):
    """Raised when an addon is absent from the registry or the store."""

    pass


class DuplicateError(AddonError):
    """Raised when discovery finds a second descriptor with a known id."""

    pass


DuplicateAddonError = DuplicateError


class CycleError(AddonError):
    """
    Raised when a descriptor would close a dependency cycle.

    Attributes:
        cycle: Addon ids along the cycle, first id repeated at the end
    """

    def __init__(self, message: str, cycle: list[str], addon_id: str | None = None):
        super().__init__(message, operation="discover", addon_id=addon_id)
        self.cycle = cycle


class DependencyError(AddonError):
    """Base class for dependency graph violations."""

    pass


class DependencyUnsatisfiedError(DependencyError):
    """
    Raised when a declared dependency is missing, inactive or out of range.

    Attributes:
        dependency_id: The dependency that is not satisfied
        constraint: The constraint string declared for it
        reason: Short machine-friendly reason ("missing", "not-installed",
            "inactive", "version")
    """

    def __init__(
        self,
        message: str,
        dependency_id: str,
        constraint: str,
        reason: str,
        operation: str | None = None,
        addon_id: str | None = None,
    ):
        super().__init__(message, operation=operation, addon_id=addon_id)
        self.dependency_id = dependency_id
        self.constraint = constraint
        self.reason = reason


class HasDependentsError(DependencyError):
    """
    Raised when other addons still depend on the target.

    Attributes:
        blocking: Ids of the dependents that block the operation
    """

    def __init__(
        self,
        message: str,
        blocking: list[str],
        operation: str | None = None,
        addon_id: str | None = None,
    ):
        super().__init__(message, operation=operation, addon_id=addon_id)
        self.blocking = blocking


class AddonStateError(AddonError):
    """Raised when an operation is not allowed from the addon's current state."""

    pass


class StoreError(AddonError):
    """Raised when the activation store contract is violated."""

    pass


class HookExecutionError(AddonError):
    """
    Wraps whatever an addon's own lifecycle hook raised.

    Attributes:
        hook: Name of the hook that failed
        original: The exception raised by the hook
    """

    def __init__(
        self,
        message: str,
        hook: str,
        original: BaseException,
        operation: str | None = None,
        addon_id: str | None = None,
    ):
        super().__init__(message, operation=operation, addon_id=addon_id)
        self.hook = hook
        self.original = original
