"""
Review orchestrator.

Coordinates one review at a time: builds the prompt, calls the LLM,
parses the reply and packages everything into a ReviewReport. Reviews run
on a background worker; the caller gets a handle that resolves exactly
once, through either the success or the error channel.
"""

import logging
import os
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from review_agent.config import ConfigProvider, LLMConfig, ReviewSettings, settings
from review_agent.llm.model import ConfigError, LLMClient, LLMError, TransportError, get_llm_client
from review_agent.llm.prompts import build_review_prompt
from review_agent.llm.schemas import REVIEW_ERROR_RULE_ID, Issue, ReviewReport, Severity
from review_agent.observability.errors import ErrorTracker
from review_agent.observability.logging import LogContext
from review_agent.observability.metrics import MetricNames, MetricsCollector
from review_agent.review.parser import JsonFindingsClassifier, ReviewParser

logger = logging.getLogger(__name__)


DEFAULT_REVIEW_TIMEOUT_SECONDS = 30.0
FAILED_SUMMARY = "Code review could not be completed"

REVIEWABLE_EXTENSIONS = (
    ".java", ".kt", ".scala", ".groovy", ".js", ".ts", ".py", ".go",
    ".rs", ".cpp", ".c", ".h", ".cs", ".php", ".rb",
)


def should_review_file(file_name: Optional[str]) -> bool:
    """True for source files with a reviewable extension."""
    if not file_name:
        return False
    return os.path.splitext(file_name.lower())[1] in REVIEWABLE_EXTENSIONS


class ReviewState(str, Enum):
    """Lifecycle of a review run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class SingleFlight:
    """
    At most one holder at a time.

    try_acquire is a compare-and-set on a flag guarded by a lock; release
    is idempotent.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active = False

    def try_acquire(self) -> bool:
        with self._lock:
            if self._active:
                return False
            self._active = True
            return True

    def release(self) -> None:
        with self._lock:
            self._active = False

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active


@dataclass
class ReviewOutcome:
    """Terminal result of one review run."""
    state: ReviewState
    report: Optional[ReviewReport] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == ReviewState.COMPLETED


SuccessCallback = Callable[[ReviewReport], None]
ErrorCallback = Callable[[str], None]
Notifier = Callable[[Callable[[], None]], None]


def _call_inline(callback: Callable[[], None]) -> None:
    callback()


class ReviewHandle:
    """
    A running review.

    Resolves exactly once: on completion, on deadline expiry or on
    cancel(). A report is delivered through on_success, anything else
    through on_error. After a timeout or cancellation the worker is
    abandoned; its late result is ignored. Callbacks have been dispatched
    by the time outcome() returns.
    """

    def __init__(
        self,
        label: str,
        on_resolved: Callable[["ReviewHandle", ReviewOutcome], None],
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        notifier: Notifier = _call_inline,
    ):
        self.label = label
        self._on_resolved = on_resolved
        self._on_success = on_success
        self._on_error = on_error
        self._notifier = notifier
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._outcome: Optional[ReviewOutcome] = None
        self._future: Optional[Future] = None
        self._timer: Optional[threading.Timer] = None

    @property
    def state(self) -> ReviewState:
        outcome = self._outcome
        return outcome.state if outcome else ReviewState.RUNNING

    def done(self) -> bool:
        return self._done.is_set()

    def outcome(self, timeout: Optional[float] = None) -> Optional[ReviewOutcome]:
        """Block until resolved (or timeout elapses) and return the outcome."""
        self._done.wait(timeout)
        return self._outcome

    def cancel(self) -> bool:
        """Abandon the review. False if it had already resolved."""
        return self._resolve(ReviewOutcome(
            state=ReviewState.CANCELLED,
            error="Code review was cancelled",
        ))

    def _start_deadline(self, timeout: float) -> None:
        timer = threading.Timer(timeout, self._expire, args=(timeout,))
        timer.daemon = True
        self._timer = timer
        timer.start()
        if self.done():
            timer.cancel()

    def _expire(self, timeout: float) -> None:
        self._resolve(ReviewOutcome(
            state=ReviewState.TIMED_OUT,
            error=f"Code review timed out after {timeout:g}s",
        ))

    def _on_future_done(self, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"Review worker crashed: {exc}", exc_info=exc)
            self._resolve(ReviewOutcome(
                state=ReviewState.FAILED,
                error=f"Code review failed: {exc}",
            ))
            return
        state, report = future.result()
        self._resolve(ReviewOutcome(state=state, report=report))

    def _resolve(self, outcome: ReviewOutcome) -> bool:
        with self._lock:
            if self._outcome is not None:
                return False
            self._outcome = outcome

        if self._timer is not None:
            self._timer.cancel()
        if outcome.state in (ReviewState.TIMED_OUT, ReviewState.CANCELLED) and self._future:
            # Best effort: a worker already in the HTTP call keeps running
            self._future.cancel()

        try:
            self._on_resolved(self, outcome)
            self._dispatch(outcome)
        finally:
            self._done.set()
        return True

    def _dispatch(self, outcome: ReviewOutcome) -> None:
        if outcome.report is not None:
            if self._on_success is None:
                return
            callback, argument = self._on_success, outcome.report
        else:
            if self._on_error is None:
                return
            callback, argument = self._on_error, outcome.error or "Code review failed"

        def deliver():
            try:
                callback(argument)
            except Exception:
                logger.exception(f"Review callback for {self.label} raised")

        self._notifier(deliver)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, TransportError) and exc.retryable


class ReviewOrchestrator:
    """
    Main review agent.

    Runs the pipeline prompt -> LLM -> parser -> report under a
    single-flight guard. Pipeline errors never escape: they become an
    ERROR issue in the returned report. Only an incomplete configuration
    is reported to the caller directly.
    """

    def __init__(
        self,
        config_provider: ConfigProvider,
        client_factory: Callable[[LLMConfig], LLMClient] = get_llm_client,
        parser: Optional[ReviewParser] = None,
        single_flight: Optional[SingleFlight] = None,
        executor: Optional[Executor] = None,
        notifier: Notifier = _call_inline,
        metrics: Optional[MetricsCollector] = None,
        error_tracker: Optional[ErrorTracker] = None,
        max_retries: int = 0,
        retry_wait=None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config_provider: Source of LLM and review settings
            client_factory: Builds a transport client for a config
            parser: Fixed reply parser; chosen per settings when omitted
            single_flight: Guard shared by orchestrators that must exclude each other
            executor: Runs pipelines off the caller's thread
            notifier: Runs completion callbacks (e.g. on a UI thread)
            metrics: Metrics collector
            error_tracker: Receives pipeline exceptions
            max_retries: Extra attempts for retryable transport failures
            retry_wait: tenacity wait strategy between attempts
        """
        self.config_provider = config_provider
        self.client_factory = client_factory
        self.parser = parser
        self.single_flight = single_flight or SingleFlight()
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="review-worker"
        )
        self.notifier = notifier
        self.metrics = metrics or MetricsCollector(settings)
        self.error_tracker = error_tracker or ErrorTracker(settings)
        self.max_retries = max(0, max_retries)
        if retry_wait is None:
            retry_wait = wait_exponential(multiplier=1, min=1, max=10)
        self.retry_wait = retry_wait

    @property
    def is_running(self) -> bool:
        return self.single_flight.active

    @property
    def state(self) -> ReviewState:
        return ReviewState.RUNNING if self.is_running else ReviewState.IDLE

    # Entry points

    def submit(
        self,
        code: str,
        label: str,
        timeout: Optional[float] = DEFAULT_REVIEW_TIMEOUT_SECONDS,
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Optional[ReviewHandle]:
        """
        Start a review in the background.

        An incomplete configuration is reported through on_error before
        returning. While another review is running this is a no-op.

        Returns:
            Handle for the started review, or None if nothing was started
        """
        try:
            return self._start(code, label, timeout, on_success, on_error)
        except ConfigError as e:
            if on_error is not None:
                on_error(str(e))
            return None

    def run(
        self,
        code: str,
        label: str,
        timeout: Optional[float] = DEFAULT_REVIEW_TIMEOUT_SECONDS,
    ) -> Optional[ReviewOutcome]:
        """
        Run a review and wait for its outcome.

        Returns:
            The outcome, or None if another review was already running

        Raises:
            ConfigError: If the LLM configuration is incomplete
        """
        handle = self._start(code, label, timeout, None, None)
        if handle is None:
            return None
        return handle.outcome()

    def analyze_code(self, code: str, label: str) -> ReviewReport:
        """Run the pipeline synchronously on the calling thread, without the guard."""
        _, report = self._run_pipeline(code, label)
        return report

    def shutdown(self, wait: bool = False) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=wait)

    # Coordination

    def _start(
        self,
        code: str,
        label: str,
        timeout: Optional[float],
        on_success: Optional[SuccessCallback],
        on_error: Optional[ErrorCallback],
    ) -> Optional[ReviewHandle]:
        llm_config = self.config_provider.get_llm_config()
        if not llm_config.is_configured():
            problem = llm_config.validate_config() or "incomplete settings"
            logger.warning(f"Review of {label} not started: {problem}")
            raise ConfigError(f"LLM configuration is not complete: {problem}")

        if not self.single_flight.try_acquire():
            logger.info(f"Review of {label} skipped, another review is in progress")
            self.metrics.record_counter(MetricNames.REVIEW_REJECTED)
            return None

        logger.info(f"Starting review for {label}")
        self.metrics.record_counter(MetricNames.REVIEW_STARTED)

        handle = ReviewHandle(
            label=label,
            on_resolved=self._finish,
            on_success=on_success,
            on_error=on_error,
            notifier=self.notifier,
        )

        try:
            future = self.executor.submit(self._run_pipeline, code, label)
        except Exception as e:
            logger.error(f"Could not schedule review for {label}: {e}", exc_info=True)
            handle._resolve(ReviewOutcome(
                state=ReviewState.FAILED,
                error=f"Could not start code review: {e}",
            ))
            return handle

        handle._future = future
        future.add_done_callback(handle._on_future_done)
        if timeout is not None and not handle.done():
            handle._start_deadline(timeout)

        return handle

    def _finish(self, handle: ReviewHandle, outcome: ReviewOutcome) -> None:
        """Runs once per handle, on whichever thread resolved it."""
        self.single_flight.release()

        metric_names = {
            ReviewState.COMPLETED: MetricNames.REVIEW_COMPLETED,
            ReviewState.FAILED: MetricNames.REVIEW_FAILED,
            ReviewState.TIMED_OUT: MetricNames.REVIEW_TIMED_OUT,
            ReviewState.CANCELLED: MetricNames.REVIEW_CANCELLED,
        }
        self.metrics.record_counter(metric_names[outcome.state])

        if outcome.report is not None:
            logger.info(
                f"Review complete for {handle.label}: {outcome.state.value}, "
                f"{outcome.report.total_issue_count()} issues in "
                f"{outcome.report.formatted_duration()}"
            )
        else:
            logger.warning(f"Review for {handle.label} ended: {outcome.state.value} ({outcome.error})")

    # Pipeline

    def _parser_for(self, review_settings: ReviewSettings) -> ReviewParser:
        if self.parser is not None:
            return self.parser
        if review_settings.structured_output:
            return ReviewParser(JsonFindingsClassifier())
        return ReviewParser()

    def _call_llm(self, prompt: str, llm_config: LLMConfig) -> str:
        """Call the transport, retrying transient failures when configured."""
        client = self.client_factory(llm_config)
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self.retry_wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt, LogContext(attempt=attempt.retry_state.attempt_number):
                    self.metrics.record_counter(MetricNames.LLM_REQUEST)
                    with self.metrics.timer_context(MetricNames.LLM_RESPONSE_TIME_MS):
                        reply = client.call(prompt)
            return reply
        finally:
            close = getattr(client, "close", None)
            if callable(close):
                close()

    def _run_pipeline(self, code: str, label: str) -> Tuple[ReviewState, ReviewReport]:
        llm_config = self.config_provider.get_llm_config()
        review_settings = self.config_provider.get_review_settings()

        report = ReviewReport(
            file_name=label,
            file_path=label,
            review_language=review_settings.review_language.value,
            review_focus=review_settings.review_focus.value,
            llm_provider=llm_config.provider,
            llm_model=llm_config.model,
        )
        report.add_metadata("code_chars", len(code))

        start_time = time.perf_counter()
        with LogContext(
            review_label=label,
            llm_provider=llm_config.provider,
            llm_model=llm_config.model,
        ):
            try:
                # Step 1: Build prompt
                prompt = build_review_prompt(code, label, review_settings)

                # Step 2: Call LLM
                raw_reply = self._call_llm(prompt, llm_config)
                report.add_metadata("reply_chars", len(raw_reply))

                # Step 3: Parse reply into issues
                parsed = self._parser_for(review_settings).parse(raw_reply)
                report.add_issues(parsed.issues)
                report.summary = parsed.summary

            except Exception as e:
                self._record_failure(report, e, label)

            finally:
                report.review_duration_ms = int((time.perf_counter() - start_time) * 1000)

        self.metrics.record_timer(MetricNames.REVIEW_DURATION_MS, report.review_duration_ms)
        self.metrics.record_histogram(MetricNames.REVIEW_ISSUES, report.total_issue_count())

        state = ReviewState.FAILED if report.error_issues() else ReviewState.COMPLETED
        return state, report

    def _record_failure(self, report: ReviewReport, exc: Exception, label: str) -> None:
        """Embed a pipeline failure into the report as an ERROR issue."""
        if isinstance(exc, LLMError):
            logger.error(f"LLM call failed for {label}: {exc}")
            self.metrics.record_counter(MetricNames.LLM_ERROR, tags={"type": type(exc).__name__})
        else:
            logger.error(f"Review pipeline failed for {label}: {exc}", exc_info=True)

        error_id = self.error_tracker.capture_exception(exc, context={"review_label": label})

        report.add_issue(Issue(
            message=f"Error during code analysis: {exc}",
            severity=Severity.ERROR,
            rule_id=REVIEW_ERROR_RULE_ID,
            description=type(exc).__name__,
        ))
        report.summary = FAILED_SUMMARY
        report.add_metadata("error", str(exc))
        report.add_metadata("error_type", type(exc).__name__)
        if error_id:
            report.add_metadata("error_id", error_id)
