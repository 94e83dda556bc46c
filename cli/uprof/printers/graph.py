"""
Graph profile report.

For every thread, methods are listed from longest to shortest total time.
Each method gets a block framed by a dashed rule: the callers first, then
the method's own line, then its callees.

    Thread ID: main
      %total   %self     total      self    children             calls   Name
    --------------------------------------------------------------------------------
     100.00%  20.00%     10.00      2.00      8.00                   1     A
                          8.00      8.00      0.00                 2/2     B
    --------------------------------------------------------------------------------
                          8.00      8.00      0.00                 2/2     A
      80.00%  80.00%      8.00      8.00      0.00                   2     B

Caller rows show ``edge calls / this method's calls``; callee rows show
``edge calls / callee's calls``.
"""

import io
import logging
from typing import List, TextIO

from uprof.model.callgraph import CallEdge, CallGraph, MethodInfo, ThreadInfo
from uprof.model.validate import check_model
from uprof.printers.printer import Printer

logger = logging.getLogger(__name__)

PERCENTAGE_WIDTH = 8
TIME_WIDTH = 10
CALL_WIDTH = 20
RULE_WIDTH = 80
NAME_INDENT = " " * 5
# Floor for the thread total so an all-zero snapshot still renders.
MIN_THREAD_TOTAL = 0.01


class GraphPrinter(Printer):
    """Render a CallGraph as a text call-graph report.

        printer = GraphPrinter(result, 5)
        printer.print(sys.stdout)

    Methods taking less than ``min_percent`` of their thread's top-level
    total time are left out. Their edges still show up under the methods
    that call them or that they call.
    """

    def print(self, output: TextIO = None, min_percent: float = None) -> None:
        output, min_percent = self._resolve(output, min_percent)
        # Reject a broken model before the first write.
        check_model(self.result)
        self._output = output
        self._min_percent = min_percent
        self._print_threads()

    def _print_threads(self):
        for index, thread in enumerate(self.result.sorted_threads()):
            if index:
                self._output.write("\n" * 2)
            self._print_methods(thread)

    def _print_methods(self, thread: ThreadInfo):
        methods = thread.sorted_methods()
        total_time = methods[0].total_time if methods else 0.0
        total_time = max(total_time, MIN_THREAD_TOTAL)

        self._print_heading(thread)

        skipped = 0
        for method in methods:
            total_percentage = (method.total_time / total_time) * 100
            self_percentage = (method.self_time / total_time) * 100

            if total_percentage < self._min_percent:
                skipped += 1
                continue

            self._output.write("-" * RULE_WIDTH + "\n")
            self._print_parents(method)
            self._output.write(
                format_method_line(method, total_percentage, self_percentage) + "\n"
            )
            self._print_children(thread, method)
        logger.debug(
            "thread %s: %d method(s), %d below %s%%",
            thread.id,
            len(methods),
            skipped,
            self._min_percent,
        )

    def _print_heading(self, thread: ThreadInfo):
        self._output.write(f"Thread ID: {thread.id}\n")
        self._output.write(format_heading() + "\n")

    def _print_parents(self, method: MethodInfo):
        for caller in method.parents:
            line = format_edge_line(caller, f"{caller.called}/{method.called}")
            self._output.write(line + "\n")

    def _print_children(self, thread: ThreadInfo, method: MethodInfo):
        for child in method.children:
            child_method = thread.resolve(child)
            line = format_edge_line(child, f"{child.called}/{child_method.called}")
            self._output.write(line + "\n")


def format_heading() -> str:
    return (
        f"{'%total':>{PERCENTAGE_WIDTH}}"
        f"{'%self':>{PERCENTAGE_WIDTH}}"
        f"{'total':>{TIME_WIDTH}}"
        f"{'self':>{TIME_WIDTH}}"
        f"{'children':>{TIME_WIDTH + 2}}"
        f"{'calls':>{CALL_WIDTH - 2}}"
        "   Name"
    )


def format_method_line(method: MethodInfo, total_percentage: float, self_percentage: float) -> str:
    # one column of the percentage width is the % sign
    return (
        f"{total_percentage:{PERCENTAGE_WIDTH - 1}.2f}%"
        f"{self_percentage:{PERCENTAGE_WIDTH - 1}.2f}%"
        f"{method.total_time:{TIME_WIDTH}.2f}"
        f"{method.self_time:{TIME_WIDTH}.2f}"
        f"{method.children_time:{TIME_WIDTH}.2f}"
        f"{method.called:{CALL_WIDTH}d}"
        f"{NAME_INDENT}{method.name}"
    )


def format_edge_line(edge: CallEdge, calls: str) -> str:
    return (
        " " * 2 * PERCENTAGE_WIDTH
        + f"{edge.total_time:{TIME_WIDTH}.2f}"
        + f"{edge.self_time:{TIME_WIDTH}.2f}"
        + f"{edge.children_time:{TIME_WIDTH}.2f}"
        + f"{calls:>{CALL_WIDTH}}"
        + f"{NAME_INDENT}{edge.target}"
    )


def render(model: CallGraph, min_percent: float = 0, sink: TextIO = None) -> None:
    """Write the graph report for ``model`` to ``sink`` (stdout by default)."""
    GraphPrinter(model, min_percent).print(sink)


def render_lines(model: CallGraph, min_percent: float = 0) -> List[str]:
    buf = io.StringIO()
    render(model, min_percent, buf)
    return buf.getvalue().splitlines()
