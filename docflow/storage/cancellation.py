import threading


class CancelScope:
    """Cancellation signal shared by the tasks of one run.

    Cancelling a scope cancels every child scope derived from it. The first
    cause passed to ``cancel`` is kept; later calls are no-ops. A child that
    is done should ``detach`` so a long-lived parent does not hold it.
    """

    def __init__(self, parent: "CancelScope | None" = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._cause: BaseException | None = None
        self._children: list[CancelScope] = []
        self._parent = parent
        if parent is not None:
            parent._attach(self)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def cause(self) -> BaseException | None:
        return self._cause

    @property
    def child_count(self) -> int:
        with self._lock:
            return len(self._children)

    def cancel(self, cause: BaseException | None = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._cause = cause
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel(cause)

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True as soon as the scope is cancelled."""
        return self._event.wait(timeout)

    def detach(self) -> None:
        """Stop following the parent scope. Safe to call more than once."""
        parent, self._parent = self._parent, None
        if parent is not None:
            parent._remove(self)

    def _attach(self, child: "CancelScope") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.append(child)
                return
            cause = self._cause
        child.cancel(cause)

    def _remove(self, child: "CancelScope") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)
