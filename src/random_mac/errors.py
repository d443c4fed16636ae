from __future__ import annotations


class RandomMacError(Exception):
    """
    Base class for every error raised by random_mac.
    """


class ValidationError(RandomMacError):
    LENGTH = "length"
    CHARACTER = "character"

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class UnknownSourceError(RandomMacError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid source name: {name!r}")
        self.name = name


class FetchError(RandomMacError):
    NETWORK = "network"
    DECODE = "decode"

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ConversionError(RandomMacError):
    pass


class PersistError(RandomMacError):
    pass


class ConfigError(RandomMacError):
    pass


class PrivilegeError(RandomMacError):
    pass


class InterfaceNotFoundError(RandomMacError):
    def __init__(self, interface: str) -> None:
        super().__init__(f"Interface '{interface}' doesn't exist")
        self.interface = interface


class MutationError(RandomMacError):
    def __init__(self, step: str, interface: str, message: str) -> None:
        super().__init__(message)
        self.step = step
        self.interface = interface
