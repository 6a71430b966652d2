"""Exceptions and warnings raised by the inventory pipeline.

Construction-time problems (an unknown animal type) raise immediately.
Rule violations on the input record are collected as messages and only
become an exception when an engine is asked to run the record. Everything
that goes wrong during a run aborts the whole calculation.
"""


class MMSError(Exception):
    """Base class for all manure management inventory errors."""

    pass


class InvalidAnimalType(MMSError):
    """Animal type cannot be resolved to a known livestock category."""

    def __init__(self, animal_type: object, known: list[str] | None = None):
        self.animal_type = animal_type
        self.known = known or []
        message = f"Invalid animal type: {animal_type!r}"
        if self.known:
            message += f" (known categories: {', '.join(sorted(self.known))})"
        super().__init__(message)


class ValidationFailure(MMSError):
    """One or more input parameters violate their constraints."""

    def __init__(self, messages: list[str] | tuple[str, ...]):
        self.messages = list(messages)
        super().__init__("Input validation failed:\n" + "\n".join(f"  - {m}" for m in self.messages))


class InvalidInputError(ValidationFailure):
    """An inventory run was requested for an input record that is not valid."""

    pass


class EFNotFound(MMSError):
    """A required emission factor is missing from the reference tables."""

    def __init__(
        self,
        animal_type: str,
        stage: str,
        gas: str,
        manure_type: str | None = None,
        method: str | None = None,
    ):
        self.animal_type = animal_type
        self.stage = stage
        self.gas = gas
        self.manure_type = manure_type
        self.method = method
        where = f"animal_type={animal_type!r}, stage={stage!r}, gas={gas!r}"
        if manure_type is not None:
            where += f", manure_type={manure_type!r}"
        if method is not None:
            where += f", method={method!r}"
        super().__init__(f"Emission factor not found ({where})")


class TableFormatError(MMSError):
    """A reference table file is malformed (e.g. a key that is not a string)."""

    def __init__(self, path: str, key_path: str, key: object):
        self.path = path
        self.key_path = key_path
        self.key = key
        super().__init__(
            f"Non-string key {key!r} at {key_path or '<root>'} in {path}; quote it (YAML reads NO/yes/on as booleans)"
        )


class MassBalanceViolation(MMSError):
    """A nitrogen flow became negative or allocations do not add up."""

    def __init__(self, stage: str, flow: str, value: float, detail: str | None = None):
        self.stage = stage
        self.flow = flow
        self.value = value
        message = f"Mass balance violated at stage {stage!r}: {flow} = {value:.6g}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ResolutionWarning(UserWarning):
    """An animal type was not found in the conversion table and is used as-is."""

    pass
