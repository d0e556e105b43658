"""Custom exceptions for the frontdoor gateway."""


class FrontdoorError(Exception):
    """Base class for gateway errors."""


class ConfigParseError(FrontdoorError):
    """Raised when the config file cannot be read, parsed or validated."""


class PortAllocationError(FrontdoorError):
    """Raised when the OS has no free TCP port to hand out."""


class ListenerBindError(FrontdoorError):
    """Raised when a listener cannot bind its address/port."""

    def __init__(self, address: str, port: int, reason: str):
        super().__init__(f"Cannot bind {address}:{port}: {reason}")
        self.address = address
        self.port = port
        self.reason = reason


class RouteConflictError(FrontdoorError):
    """Raised when a route prefix overlaps one that is already installed."""

    def __init__(self, prefix: str, existing: str):
        super().__init__(f"Route prefix {prefix!r} overlaps installed prefix {existing!r}")
        self.prefix = prefix
        self.existing = existing


class ProxyForwardError(FrontdoorError):
    """Raised when a request cannot be relayed to its origin."""

    def __init__(self, target: str, detail: str, status_code: int = 502):
        super().__init__(f"{target}: {detail}")
        self.target = target
        self.detail = detail
        self.status_code = status_code


class InvalidRoutePrefixError(FrontdoorError):
    """Raised when a route prefix cannot be used as a literal path."""

    def __init__(self, prefix: str, reason: str):
        super().__init__(f"Route prefix {prefix!r} is invalid: {reason}")
        self.prefix = prefix
        self.reason = reason
