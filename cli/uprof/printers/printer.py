import sys
from abc import ABC, abstractmethod
from typing import TextIO

from uprof.model.callgraph import CallGraph


class Printer(ABC):
    """Base class for reports rendered from a CallGraph.

    Subclasses only read the model. ``print`` writes one complete report
    to ``output``; ``min_percent`` overrides the value given at
    construction time.
    """

    def __init__(self, result: CallGraph, min_percent: float = 0):
        self.result = result
        self.min_percent = min_percent

    @abstractmethod
    def print(self, output: TextIO = None, min_percent: float = None) -> None:
        raise NotImplementedError

    def _resolve(self, output, min_percent):
        if output is None:
            output = sys.stdout
        if min_percent is None:
            min_percent = self.min_percent
        if not 0 <= min_percent < 100:
            raise ValueError(f"min_percent must be in [0, 100), got {min_percent}")
        return output, min_percent
