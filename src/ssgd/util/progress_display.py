"""Progress reporting for optimisations and bootstrap runs.

A function decorated with display_wrap receives a ``ui`` argument. In a
terminal or a Jupyter notebook ``ui`` drives a tqdm progress bar. Otherwise
progress messages are sent to this module's logger at DEBUG level.
"""

import functools
import logging
import sys
import threading

from tqdm import notebook, tqdm

from ssgd.util.misc import in_jupyter

logger = logging.getLogger(__name__)

_BAR_FORMAT = "{desc} {percentage:3.0f}%|{bar}|{elapsed}<{remaining}"


class ProgressContext:
    """reports the fraction complete of one task

    Parameters
    ----------
    bar_type
        tqdm class used to draw the bar, None to log progress instead
    depth
        nesting level, a subcontext is drawn on the line below its parent
    mininterval
        minimum seconds between redraws of the bar
    """

    def __init__(self, bar_type=None, depth=-1, mininterval=1.0):
        self.bar_type = bar_type
        self.depth = depth
        self.mininterval = mininterval
        self.message = None
        self._bar = None

    def subcontext(self):
        return self.__class__(self.bar_type, self.depth + 1, self.mininterval)

    def _get_bar(self):
        if self._bar is None and self.bar_type is not None:
            self._bar = self.bar_type(
                total=1,
                position=self.depth,
                leave=True,
                bar_format=_BAR_FORMAT,
                mininterval=self.mininterval,
                dynamic_ncols=True,
            )
        return self._bar

    def display(self, msg=None, progress=None):
        """shows msg with progress, the fraction complete"""
        if msg is not None:
            self.message = msg
        bar = self._get_bar()
        if bar is None:
            done = "" if progress is None else f"{min(progress, 1.0):4.0%} "
            logger.debug("%s%s", done, self.message or "")
            return
        bar.n = 1 if progress is None else min(progress, 1.0)
        if msg is not None:
            bar.set_description(msg, refresh=False)
        bar.refresh()

    def done(self):
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def series(self, items, noun="", labels=None, start=0.0, end=1.0):
        """yields each of items, displaying progress through them"""
        items = list(items)
        count = len(items)
        if not count:
            return
        if labels is None:
            width = len(str(count))
            labels = [f"{noun} {i + 1:{width}d}/{count}".strip() for i in range(count)]
        elif len(labels) != count:
            raise ValueError(f"{len(labels)} labels for {count} items")
        step = (end - start) / count
        for i, item in enumerate(items):
            self.display(msg=labels[i], progress=start + step * i)
            yield item
        self.display(progress=end)

    def map(self, f, items, **kw):
        """list of f applied to each of items, kw are passed to series()"""
        return [f(item) for item in self.series(items, **kw)]


class NullContext(ProgressContext):
    """A UI context which discards all output"""

    def subcontext(self):
        return self

    def display(self, msg=None, progress=None):
        pass

    def done(self):
        pass


NULL_CONTEXT = NullContext()
_CURRENT = threading.local()


def _root_context():
    if sys.stdout.isatty():
        return ProgressContext(tqdm)
    if in_jupyter():
        return ProgressContext(notebook.tqdm)
    return ProgressContext()


def display_wrap(slow_function):
    """Decorator which give the function its own UI context.
    The function will receive an extra argument, 'ui', which is used to
    report progress. Calling it with show_progress=False discards that
    output, including the output of any wrapped function it calls."""

    @functools.wraps(slow_function)
    def wrapped(*args, **kw):
        previous = getattr(_CURRENT, "context", None)
        parent = previous or _root_context()
        show_progress = kw.pop("show_progress", None)
        context = NULL_CONTEXT if show_progress is False else parent.subcontext()
        kw["ui"] = _CURRENT.context = context
        try:
            return slow_function(*args, **kw)
        finally:
            _CURRENT.context = previous
            context.done()

    return wrapped
