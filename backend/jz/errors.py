"""
Errors raised by the analysis core.

Only missing inputs are errors. Unreadable files are skipped and ambiguous
facts are recorded as data, so an empty result is never reported through an
exception.
"""


class JzError(Exception):
    """Base class for analysis errors."""


class InputAbsentError(JzError):
    """A requested input does not exist."""


class RootNotFoundError(InputAbsentError):
    def __init__(self, root: str):
        super().__init__(f"directory '{root}' does not exist")
        self.root = root


class ResourceNotFoundError(InputAbsentError):
    def __init__(self, resource_name: str):
        super().__init__(f"resource '{resource_name}' not found")
        self.resource_name = resource_name


class ServiceNotFoundError(InputAbsentError):
    def __init__(self, service_name: str):
        super().__init__(f"service '{service_name}' not found")
        self.service_name = service_name
