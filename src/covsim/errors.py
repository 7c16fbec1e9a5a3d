"""Exceptions levées par le moteur d'intégration."""


class CovsimError(Exception):
    """Base class for covsim errors."""


class ShapeMismatchError(CovsimError, ValueError):
    def __init__(self, message: str, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class NegativeTimeSpanError(CovsimError, ValueError):
    def __init__(self, t_start: float, t_max: float):
        super().__init__(
            f"Cannot integrate backwards: t_max={t_max} < state.time={t_start}"
        )
        self.t_start = t_start
        self.t_max = t_max
