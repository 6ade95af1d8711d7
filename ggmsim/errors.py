class GGMError(Exception):
    """Base class for all errors raised by ggmsim."""


class InvalidParameter(GGMError, ValueError):
    """An argument is out of range. Raised before any computation starts."""


class DegenerateInput(GGMError, ValueError):
    """The input cannot be evaluated as given (empty true graph, singular sample covariance, ...).

    Callers are expected to resample or adjust parameters.
    """


class EstimationFailure(GGMError, RuntimeError):
    """
    An underlying solver did not converge.

    Attributes
    ----------
    lambda_ : float or None
        The penalty value of the failed fit.
    fold : int or None
        The cross-validation fold, if the fit ran inside one.
    column : int or None
        The regressed variable, for nodewise fits.
    """
    def __init__(self, message, lambda_=None, fold=None, column=None):
        super().__init__(message)
        self.message = message
        self.lambda_ = lambda_
        self.fold = fold
        self.column = column

    def with_context(self, **context):
        fields = {'lambda_': self.lambda_, 'fold': self.fold, 'column': self.column}
        fields.update(context)
        return EstimationFailure(self.message, **fields)

    def __str__(self):
        context = [f'{name}={value}' for name, value in
                   (('lambda', self.lambda_), ('fold', self.fold), ('column', self.column))
                   if value is not None]
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message

    def __reduce__(self):
        return (EstimationFailure, (self.message, self.lambda_, self.fold, self.column))


class AUCUndefined(GGMError, ArithmeticError):
    """The ROC polyline is degenerate, e.g. every point sits at one FPR."""
