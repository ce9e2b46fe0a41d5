"""Cooperative cancellation for superseded requests."""


class CancellationToken:
    """
    Flag shared between an orchestrator and the work it started.

    Cancelling never interrupts an in-flight call; the worker checks the
    flag between units of work and stops publishing once it is set.
    """

    def __init__(self, generation: int = 0):
        self.generation = generation
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        return f"CancellationToken(generation={self.generation}, cancelled={self._cancelled})"
