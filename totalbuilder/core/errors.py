from __future__ import annotations


class TotalBuilderError(ValueError):
    """Base class for caller-input errors raised by totalbuilder."""


class UnknownUnitError(TotalBuilderError):
    def __init__(self, unit: str) -> None:
        super().__init__(f"invalid unit type: {unit}")
        self.unit = unit


class UnknownUnitSetError(TotalBuilderError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown unit set: {name}")
        self.name = name


class InvalidValueMapError(TotalBuilderError):
    pass


class InvalidTotalError(TotalBuilderError):
    pass


class InvalidCountError(TotalBuilderError):
    pass
