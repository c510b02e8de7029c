"""Exception types raised by the pipeline stages."""


class PhyloPipelineError(Exception):
    """Base class for all pipeline failures."""


class DataFormatError(PhyloPipelineError):
    """An input table or file does not have the expected structure."""


class AlignmentError(PhyloPipelineError):
    """Multiple sequence alignment could not be produced."""


class DistanceError(PhyloPipelineError):
    """A distance matrix is undefined or violates its invariants."""


class TreeBuildError(PhyloPipelineError):
    """Tree inference failed or produced an inconsistent tip set."""


class TipSetMismatchError(PhyloPipelineError):
    """Two trees being compared do not share the same tip labels."""

    def __init__(self, only_left: set[str], only_right: set[str]):
        self.only_left = set(only_left)
        self.only_right = set(only_right)
        super().__init__(
            "tree comparison requires identical tip sets; "
            f"only in left: {sorted(self.only_left)}, only in right: {sorted(self.only_right)}"
        )


class PipelineStageError(PhyloPipelineError):
    """A pipeline stage failed; wraps the underlying precondition failure."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause}")
