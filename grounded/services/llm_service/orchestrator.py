"""Model orchestrator: per-slot lifecycle, fallback cascade, single-flight.

The orchestrator is an explicit object owning all slot state. Callers get it
by injection; there is no module-level model handle.

State machine per slot:
    unloaded -> loading -> ready | failed
    failed -> (force_reload) -> unloaded -> loading -> ...

At most one load or reload is in flight per slot. Joining callers share its
outcome and give up after `max_wait_seconds`, leaving the load running.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import OrchestratorConfig
from .models import (
    InferenceError,
    InferenceFailureReason,
    InvocationOptions,
    ModelBackend,
    ModelCandidate,
    ModelHandle,
    ModelKind,
    ModelSlot,
    ModelState,
    classify_exception,
    default_options,
    options_match,
)
from .single_flight import SingleFlight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotStatus:
    """Point-in-time view of one slot."""
    slot: ModelSlot
    state: ModelState
    model_id: Optional[str] = None
    kind: Optional[ModelKind] = None
    last_error: Optional[InferenceError] = None

    @property
    def ready(self) -> bool:
        return self.state == ModelState.READY

    @property
    def loading(self) -> bool:
        return self.state == ModelState.LOADING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": self.slot.value,
            "state": self.state.value,
            "ready": self.ready,
            "loading": self.loading,
            "model_id": self.model_id,
            "kind": self.kind.value if self.kind else None,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }


class _SlotRecord:
    """Mutable slot state, only touched on the event loop."""

    def __init__(self):
        self.state = ModelState.UNLOADED
        self.handle: Optional[ModelHandle] = None
        self.last_error: Optional[InferenceError] = None
        self.load_attempts = 0


class ModelOrchestrator:
    """Loads, serves and reloads models for each logical slot."""

    def __init__(
        self,
        backend: ModelBackend,
        config: Optional[OrchestratorConfig] = None,
    ):
        """Initialize orchestrator.

        Args:
            backend: Runtime used to load, run and evict models
            config: Timeouts and candidate cascades per slot
        """
        self.backend = backend
        self.config = config or OrchestratorConfig()
        self._slots: Dict[ModelSlot, _SlotRecord] = {slot: _SlotRecord() for slot in ModelSlot}
        self._flight = SingleFlight()
        self._reloads: Dict[ModelSlot, asyncio.Task] = {}

        logger.info(
            "MODEL_ORCHESTRATOR_INITIALIZED",
            extra={
                "backend": type(backend).__name__,
                "max_wait_seconds": self.config.max_wait_seconds,
                "candidates": {
                    slot.value: [c.model_id for c in self.config.candidates_for(slot)]
                    for slot in ModelSlot
                },
            }
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self, slot: ModelSlot) -> SlotStatus:
        record = self._slots[slot]
        handle = record.handle
        return SlotStatus(
            slot=slot,
            state=record.state,
            model_id=handle.model_id if handle else None,
            kind=handle.kind if handle else None,
            last_error=record.last_error,
        )

    def handle(self, slot: ModelSlot) -> Optional[ModelHandle]:
        return self._slots[slot].handle

    def load_attempts(self, slot: ModelSlot) -> int:
        """Number of cascade runs started for a slot (loads and reloads)."""
        return self._slots[slot].load_attempts

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def ensure_loaded(self, slot: ModelSlot) -> bool:
        """Make sure a slot has a ready handle.

        The first caller starts the cascade and waits for it. Callers that
        arrive while a load is in flight join it, bounded by max_wait_seconds.

        Returns:
            True if the slot is ready, False if it failed or the wait timed out

        Logs:
            - MODEL_SLOT_FAILED_TERMINAL: Slot already failed; no new attempt
            - MODEL_LOAD_JOINED: Caller joined an in-flight load
            - MODEL_LOAD_WAIT_TIMEOUT: Joiner gave up waiting
        """
        record = self._slots[slot]
        if record.state == ModelState.READY:
            return True

        inflight = self._flight.get(slot)
        if inflight is None and record.state == ModelState.FAILED:
            logger.info(
                "MODEL_SLOT_FAILED_TERMINAL",
                extra={"slot": slot.value}
            )
            return False

        task, created = self._flight.start(slot, lambda: self._run_cascade(slot))
        if created:
            return await self._flight.wait(task)

        logger.info("MODEL_LOAD_JOINED", extra={"slot": slot.value})
        return await self._wait_for(slot, task, self.config.max_wait_seconds)

    async def wait_until_ready(self, slot: ModelSlot, timeout: Optional[float] = None) -> bool:
        """Bounded wait for an in-flight load without starting one.

        Args:
            slot: Slot to wait on
            timeout: Seconds to wait (default: max_wait_seconds)

        Returns:
            True if the slot is ready when the wait ends
        """
        if self._slots[slot].state == ModelState.READY:
            return True

        task = self._flight.get(slot)
        if task is None:
            return False

        wait = self.config.max_wait_seconds if timeout is None else timeout
        return await self._wait_for(slot, task, wait)

    async def force_reload(self, slot: ModelSlot) -> bool:
        """Clear the slot and its cached artifacts, then rerun the cascade.

        Waits for any in-flight load to settle first. Concurrent reloads of the
        same slot share one reload, so the cache is cleared once.

        Returns:
            True if the slot is ready after the reload

        Logs:
            - MODEL_FORCE_RELOAD_REQUESTED
        """
        logger.info("MODEL_FORCE_RELOAD_REQUESTED", extra={"slot": slot.value})

        while True:
            inflight = self._flight.get(slot)
            if inflight is None or inflight is self._reloads.get(slot):
                break
            await self._flight.wait(inflight)

        task, created = self._flight.start(slot, lambda: self._reload(slot))
        if created:
            self._reloads[slot] = task
        return await self._flight.wait(task)

    async def _wait_for(self, slot: ModelSlot, task: asyncio.Task, timeout: float) -> bool:
        try:
            return await self._flight.wait(task, timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "MODEL_LOAD_WAIT_TIMEOUT",
                extra={"slot": slot.value, "timeout_seconds": timeout}
            )
            return False

    async def _reload(self, slot: ModelSlot) -> bool:
        record = self._slots[slot]
        record.handle = None
        record.last_error = None
        record.state = ModelState.UNLOADED

        model_ids = [c.model_id for c in self.config.candidates_for(slot)]
        try:
            await self.backend.clear_cache(model_ids)
        except Exception as e:
            error = classify_exception(e)
            record.state = ModelState.FAILED
            record.last_error = error
            logger.error(
                "MODEL_CACHE_CLEAR_FAILED",
                extra={
                    "slot": slot.value,
                    "model_ids": model_ids,
                    "reason": error.reason.value,
                    "error": error.message,
                }
            )
            return False

        logger.info(
            "MODEL_CACHE_CLEARED",
            extra={"slot": slot.value, "model_ids": model_ids}
        )
        return await self._run_cascade(slot)

    async def _run_cascade(self, slot: ModelSlot) -> bool:
        """Try each candidate in order, stopping at the first that loads.

        Logs:
            - MODEL_CANDIDATE_LOADING: Before each attempt
            - MODEL_CANDIDATE_FAILED: Non-fatal; the next candidate is tried
            - MODEL_LOADED: A candidate loaded
            - MODEL_SLOT_FAILED: Every candidate failed
        """
        record = self._slots[slot]
        record.state = ModelState.LOADING
        record.handle = None
        record.load_attempts += 1
        candidates = self.config.candidates_for(slot)
        last_error: Optional[InferenceError] = None

        for position, candidate in enumerate(candidates):
            logger.info(
                "MODEL_CANDIDATE_LOADING",
                extra={
                    "slot": slot.value,
                    "model_id": candidate.model_id,
                    "position": position,
                    "kind": candidate.kind.value,
                }
            )
            start_time = time.perf_counter()

            try:
                runner = await self._load_candidate(candidate)
            except InferenceError as e:
                last_error = e
                logger.warning(
                    "MODEL_CANDIDATE_FAILED",
                    extra={
                        "slot": slot.value,
                        "model_id": candidate.model_id,
                        "reason": e.reason.value,
                        "error": e.message,
                    }
                )
                continue

            record.handle = ModelHandle.from_candidate(candidate, runner)
            record.state = ModelState.READY
            record.last_error = None
            logger.info(
                "MODEL_LOADED",
                extra={
                    "slot": slot.value,
                    "model_id": candidate.model_id,
                    "position": position,
                    "load_ms": (time.perf_counter() - start_time) * 1000,
                }
            )
            return True

        record.state = ModelState.FAILED
        record.last_error = last_error or InferenceError(
            InferenceFailureReason.UNSUPPORTED_BACKEND,
            f"No candidates configured for {slot.value}",
        )
        logger.error(
            "MODEL_SLOT_FAILED",
            extra={
                "slot": slot.value,
                "candidates_tried": len(candidates),
                "reason": record.last_error.reason.value,
            }
        )
        return False

    async def _load_candidate(self, candidate: ModelCandidate) -> Any:
        try:
            return await asyncio.wait_for(
                self.backend.load(candidate),
                self.config.candidate_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise InferenceError(
                InferenceFailureReason.NETWORK,
                f"Loading timed out after {self.config.candidate_timeout_seconds}s",
                model_id=candidate.model_id,
            ) from e
        except Exception as e:
            raise classify_exception(e, candidate.model_id) from e

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    async def invoke(
        self,
        slot: ModelSlot,
        prompt: str,
        options: Optional[InvocationOptions] = None,
    ) -> str:
        """Run inference on a ready slot.

        Args:
            slot: Slot to invoke
            prompt: Model input
            options: Kind-specific options; defaults follow the handle's kind

        Returns:
            Generated text, or the top label for classifiers

        Raises:
            InferenceError: Slot not ready, options/kind mismatch, or backend failure
        """
        record = self._slots[slot]
        handle = record.handle

        if record.state != ModelState.READY or handle is None:
            if record.state == ModelState.FAILED:
                reason = (
                    record.last_error.reason
                    if record.last_error else InferenceFailureReason.UNSUPPORTED_BACKEND
                )
            else:
                reason = InferenceFailureReason.RUNTIME
            raise InferenceError(reason, f"Slot {slot.value} is {record.state.value}")

        if options is None:
            options = default_options(handle.kind)
        elif not options_match(handle.kind, options):
            raise InferenceError(
                InferenceFailureReason.RUNTIME,
                f"{type(options).__name__} cannot drive a {handle.kind.value} model",
                model_id=handle.model_id,
            )

        start_time = time.perf_counter()
        try:
            text = await self.backend.run(handle, prompt, options)
        except Exception as e:
            error = classify_exception(e, handle.model_id)
            logger.error(
                "MODEL_INVOKE_FAILED",
                extra={
                    "slot": slot.value,
                    "model_id": handle.model_id,
                    "reason": error.reason.value,
                    "retryable": error.retryable,
                }
            )
            if error is e:
                raise
            raise error from e

        logger.info(
            "MODEL_INVOKED",
            extra={
                "slot": slot.value,
                "model_id": handle.model_id,
                "prompt_length": len(prompt),
                "output_length": len(text),
                "latency_ms": (time.perf_counter() - start_time) * 1000,
            }
        )
        return text
