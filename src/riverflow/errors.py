"""Error types raised while running a riverflow program."""


class RiverflowError(Exception):
    """Base class for every error the pipeline reports."""

    line: int | None = None


class LexError(RiverflowError):
    """One or more unrecognised characters.

    Scanning does not stop at the first problem: ``errors`` holds every
    ``(line, message)`` pair and ``tokens`` the tokens produced anyway.
    """

    def __init__(self, errors: list[tuple[int, str]], tokens: list | None = None):
        self.errors = errors
        self.tokens = tokens or []
        self.line = errors[0][0] if errors else None
        super().__init__("; ".join(f"line {line}: {msg}" for line, msg in errors))


class ParseError(RiverflowError):
    def __init__(self, msg: str, line: int, lexeme: str | None = None):
        where = "end" if lexeme is None else f"'{lexeme}'"
        super().__init__(f"line {line}, at {where}: {msg}")
        self.msg = msg
        self.line = line
        self.lexeme = lexeme


class EvaluationError(RiverflowError):
    """Runtime error while executing statements (e.g. updating an unknown river)."""

    def __init__(self, msg: str, line: int | None = None, name: str | None = None):
        super().__init__(msg)
        self.msg = msg
        self.line = line
        self.name = name


class InvalidConfiguration(EvaluationError):
    """A declaration holds a value the simulation cannot run with."""


class MissingCapacity(RiverflowError):
    def __init__(self, names: list[str]):
        super().__init__(f"missing capacity for: {', '.join(names)}")
        self.names = list(names)


class ConfigError(RiverflowError):
    pass
