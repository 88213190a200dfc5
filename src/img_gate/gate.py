"""
High-level orchestration for the image admission gate.

    validate  ->  [sharpness task]  ┐
                  [text task]       ┴->  decide  ->  QualityVerdict

Sharpness and text tasks run on separate thread pools, so a hung OCR call
can only ever hold up other OCR calls.  Every submitted image gets an
AnalysisHandle; cancelling it (or superseding it through GateSession)
guarantees its results are discarded instead of attributed to a newer image.
"""
from __future__ import annotations
import logging, threading, time, uuid
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

from .config import GateConfig
from .decision import decide
from .errors import AnalysisCancelled, GateError, RecognitionError
from .models import FileMeta, Outcome, QualityVerdict, TextResult
from .quality import LaplacianSharpnessEngine, SharpnessEngine
from .validation import validate
from .vision import RekognitionTextEngine, TesseractTextEngine, TextRecognitionEngine

log = logging.getLogger(__name__)

TEXT_PREVIEW_CHARS = 80


class AnalysisHandle:
    def __init__(self, image_id: str, config: GateConfig,
                 cancel_token: threading.Event,
                 sharp_fut: Future, text_fut: Future | None):
        self.image_id = image_id
        self.config = config
        self._token = cancel_token
        self._sharp = sharp_fut
        self._text = text_fut
        self._text_deadline = time.monotonic() + config.text_timeout_s
        self._verdict: QualityVerdict | None = None
        self._lock = threading.Lock()

    # -------- cancellation --------------------------------------------------
    def cancel(self) -> None:
        if self._token.is_set():
            return
        self._token.set()
        self._sharp.cancel()
        if self._text is not None:
            self._text.cancel()
        log.info("%s analysis cancelled", self.image_id)

    @property
    def cancelled(self) -> bool:
        return self._token.is_set()

    # -------- state ---------------------------------------------------------
    def done(self) -> bool:
        if self._verdict is not None or self.cancelled:
            return True
        if not self._sharp.done():
            return False
        return (self._text is None or self._text.done()
                or time.monotonic() >= self._text_deadline)

    @property
    def outcome(self) -> Outcome:
        """
        PENDING while running or after cancellation.  Once the analysis has
        finished this resolves the verdict, so a terminal failure such as
        DecodeError is raised here exactly as `result()` would raise it.
        """
        if not self.done() or self.cancelled:
            return Outcome.PENDING
        return self.result().outcome

    # -------- result --------------------------------------------------------
    def result(self, timeout: float | None = None) -> QualityVerdict:
        """
        Wait for both analyses and return the verdict.

        Raises DecodeError when the image cannot be decoded and
        AnalysisCancelled when the handle was cancelled or superseded.
        A failed or timed-out text analysis only degrades the verdict.
        """
        with self._lock:
            if self._verdict is None:
                verdict = self._resolve(timeout)
                # cancel() may have landed while decide() ran
                self._raise_if_cancelled()
                self._verdict = verdict
            return self._verdict

    def _resolve(self, timeout: float | None) -> QualityVerdict:
        self._raise_if_cancelled()
        try:
            sharpness = self._sharp.result(timeout)
        except CancelledError as exc:
            raise AnalysisCancelled(self.image_id) from exc

        text, text_error = self._wait_text()
        self._raise_if_cancelled()

        verdict = decide(sharpness, text, self.config.thresholds,
                         text_error=text_error,
                         text_checked=self._text is not None)
        log.info("%s verdict=%s reason=%s lines=%s", self.image_id,
                 verdict.outcome.value,
                 verdict.reject_reason.value if verdict.reject_reason else None,
                 verdict.status_lines)
        return verdict

    def _wait_text(self) -> tuple[TextResult | None, RecognitionError | None]:
        if self._text is None:
            return None, None
        remaining = max(0.0, self._text_deadline - time.monotonic())
        try:
            return self._text.result(timeout=remaining), None
        except FutureTimeout:
            self._text.cancel()
            log.warning("%s text recognition timed out after %.1fs",
                        self.image_id, self.config.text_timeout_s)
            return None, RecognitionError("text recognition timed out")
        except CancelledError as exc:
            raise AnalysisCancelled(self.image_id) from exc
        except AnalysisCancelled:
            raise
        except RecognitionError as exc:
            log.warning("%s text recognition failed (%s)", self.image_id, exc)
            return None, exc
        except Exception as exc:
            log.warning("%s text engine error (%r)", self.image_id, exc)
            err = RecognitionError(f"text engine error: {exc!r}")
            err.__cause__ = exc
            return None, err

    def _raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise AnalysisCancelled(self.image_id)


class QualityGate:
    def __init__(self, config: GateConfig,
                 sharpness_engine: SharpnessEngine | None = None,
                 text_engine: TextRecognitionEngine | None = None,
                 executor: Executor | None = None,
                 text_executor: Executor | None = None):
        self.config = config
        self.sharpness_engine = sharpness_engine or LaplacianSharpnessEngine(config.padding)
        if text_engine is None and config.text_detection:
            text_engine = RekognitionTextEngine(timeout=config.text_timeout_s)
        if isinstance(text_engine, TesseractTextEngine) and not text_engine.timeout:
            text_engine.timeout = config.text_timeout_s
        self.text_engine = text_engine if config.text_detection else None

        self._owned: list[Executor] = []
        self._executor = executor or self._pool("img-gate-sharp")
        self._text_executor = text_executor or self._pool("img-gate-text")

    def _pool(self, prefix: str) -> Executor:
        pool = ThreadPoolExecutor(max_workers=self.config.max_workers,
                                  thread_name_prefix=prefix)
        self._owned.append(pool)
        return pool

    def submit(self, data: bytes, meta: FileMeta) -> AnalysisHandle:
        image_id = str(uuid.uuid4())
        try:
            validate(meta, self.config.thresholds)
        except GateError as exc:
            log.warning("%s rejected before analysis: %s", image_id, exc)
            raise

        token = threading.Event()
        sharp_fut = self._executor.submit(self._run_sharpness, image_id, token, data)
        text_fut = None
        if self.text_engine is not None:
            text_fut = self._text_executor.submit(self._run_text, image_id, token, data)
        return AnalysisHandle(image_id, self.config, token, sharp_fut, text_fut)

    def evaluate(self, data: bytes, meta: FileMeta) -> QualityVerdict:
        return self.submit(data, meta).result()

    # -------- tasks ---------------------------------------------------------
    def _run_sharpness(self, image_id: str, token: threading.Event, data: bytes) -> float:
        if token.is_set():
            raise AnalysisCancelled(image_id)
        try:
            sharpness = self.sharpness_engine.sharpness(data)
        except GateError as exc:
            log.warning("%s bad image (%s)", image_id, exc)
            raise
        log.info("%s quality check: sharpness=%.2f threshold=%.2f", image_id,
                 sharpness, self.config.thresholds.sharpness_threshold)
        return sharpness

    def _run_text(self, image_id: str, token: threading.Event, data: bytes) -> TextResult:
        if token.is_set():
            raise AnalysisCancelled(image_id)
        result = self.text_engine.recognize(data, self.config.language)
        log.debug("%s detected text: %r", image_id, result.text[:TEXT_PREVIEW_CHARS])
        return result

    # -------- lifecycle -----------------------------------------------------
    def close(self) -> None:
        for pool in self._owned:
            pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "QualityGate":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class GateSession:
    """
    Tracks the one image a caller is currently looking at.  Selecting a new
    image cancels the analysis of the previous one.
    """

    def __init__(self, gate: QualityGate):
        self.gate = gate
        self._current: AnalysisHandle | None = None
        self._lock = threading.Lock()

    @property
    def current(self) -> AnalysisHandle | None:
        return self._current

    def select(self, data: bytes, meta: FileMeta) -> AnalysisHandle:
        with self._lock:
            if self._current is not None:
                self._current.cancel()
                self._current = None
            self._current = self.gate.submit(data, meta)
            return self._current

    def verdict(self, timeout: float | None = None) -> QualityVerdict:
        handle = self._current
        if handle is None:
            raise LookupError("no image selected")
        return handle.result(timeout)
