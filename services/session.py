# services/session.py
"""Client-side driver for one student's timed attempt at an assignment.

States: LOADING -> IN_PROGRESS -> SUBMITTING -> SUBMITTED, or CANCELLED.

The countdown is driven by a ``Ticker`` owned by the session. Tests inject a
``ManualTicker`` and a fake clock so auto-submit can be exercised without
waiting. The backend is reached through a client exposing
``get_assignment_questions`` and ``submit_assignment`` (see services/client.py).
"""
import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional
import logging
import time

from models.assignment import LABELS
from services.errors import AlreadySubmitted, InvalidAssignment, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER = "A"

TickCallback = Callable[[], Awaitable[None]]


class SessionState(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


class Ticker:
    """Calls an async callback once per second until stopped."""

    def start(self, callback: TickCallback) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    @property
    def running(self) -> bool:
        raise NotImplementedError


class AsyncioTicker(Ticker):
    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def start(self, callback: TickCallback) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run(callback))

    async def _run(self, callback: TickCallback) -> None:
        me = asyncio.current_task()
        while self._task is me:
            await asyncio.sleep(self.interval)
            if self._task is not me:
                break
            try:
                await callback()
            except Exception as e:
                # The session keeps the error on last_error and is back in progress.
                logger.error(f"Timer callback failed: {str(e)}")

    def stop(self) -> None:
        # A tick may stop its own ticker (auto-submit); never cancel the running task from inside.
        if self._task and self._task is not asyncio.current_task():
            self._task.cancel()
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None


class ManualTicker(Ticker):
    """Ticker driven by the caller, for deterministic tests."""

    def __init__(self):
        self._callback: Optional[TickCallback] = None
        self.started = 0

    def start(self, callback: TickCallback) -> None:
        self._callback = callback
        self.started += 1

    def stop(self) -> None:
        self._callback = None

    @property
    def running(self) -> bool:
        return self._callback is not None

    async def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            if self._callback is None:
                return
            await self._callback()


class AssignmentSession:
    def __init__(
        self,
        client,
        assignment_id: str,
        student_id: str,
        time_limit_minutes: int,
        ticker: Optional[Ticker] = None,
        clock: Callable[[], float] = time.monotonic,
        placeholder: Optional[str] = DEFAULT_PLACEHOLDER,
    ):
        if placeholder is not None and placeholder not in LABELS:
            raise ValidationError(f"Placeholder must be one of {', '.join(LABELS)} or None")
        self.client = client
        self.assignment_id = assignment_id
        self.student_id = student_id
        self.time_limit_minutes = time_limit_minutes
        self.ticker = ticker or AsyncioTicker()
        self.clock = clock
        self.placeholder = placeholder

        self.state = SessionState.LOADING
        self.questions: List = []
        self.answers: Dict[int, str] = {}
        self.current = 0
        self.remaining_seconds = time_limit_minutes * 60
        self.started_at: Optional[float] = None
        self.submitted = False
        self.already_submitted = False
        self.submission = None
        self.last_error: Optional[Exception] = None

    # ---- Lifecycle -----------------------------------------------------------

    async def load(self) -> None:
        if self.state is not SessionState.LOADING:
            return
        try:
            questions = await self.client.get_assignment_questions(self.assignment_id)
            if not questions:
                raise InvalidAssignment("Assignment has no questions")
        except Exception as e:
            logger.warning(f"Could not load assignment {self.assignment_id}: {str(e)}")
            self.last_error = e
            self.state = SessionState.CANCELLED
            raise
        if self.state is SessionState.CANCELLED:
            # Cancelled while the fetch was in flight
            return
        self.questions = list(questions)
        self.started_at = self.clock()
        self.state = SessionState.IN_PROGRESS
        self.ticker.start(self.tick)
        logger.info(f"Session started: student={self.student_id} assignment={self.assignment_id} "
                    f"questions={len(self.questions)} seconds={self.remaining_seconds}")

    def cancel(self) -> None:
        if self.state not in (SessionState.LOADING, SessionState.IN_PROGRESS):
            return
        self.ticker.stop()
        self.answers.clear()
        self.state = SessionState.CANCELLED
        logger.info(f"Session cancelled: student={self.student_id} assignment={self.assignment_id}")

    # ---- In progress ---------------------------------------------------------

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    def unanswered_indices(self) -> List[int]:
        return [i for i in range(self.total_questions) if i not in self.answers]

    def _require_in_progress(self) -> None:
        if self.state is not SessionState.IN_PROGRESS:
            raise ValidationError(f"Session is {self.state.value}, not in progress")

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.total_questions:
            raise ValidationError(f"Question index {index} out of range 0..{self.total_questions - 1}")

    def go_to(self, index: int) -> None:
        self._require_in_progress()
        self._check_index(index)
        self.current = index

    def next(self) -> None:
        self._require_in_progress()
        self.current = min(self.total_questions - 1, self.current + 1)

    def previous(self) -> None:
        self._require_in_progress()
        self.current = max(0, self.current - 1)

    def select_answer(self, index: int, label: str) -> None:
        self._require_in_progress()
        self._check_index(index)
        if label not in LABELS:
            raise ValidationError(f"Answer must be A, B, C, or D, got {label!r}")
        self.answers[index] = label

    def clear_answer(self, index: int) -> None:
        self._require_in_progress()
        self._check_index(index)
        self.answers.pop(index, None)

    async def tick(self) -> None:
        # Stale ticks after submit or cancel land here and do nothing.
        if self.state is not SessionState.IN_PROGRESS:
            return
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            logger.info(f"Time is up for student={self.student_id} assignment={self.assignment_id}, auto-submitting")
            await self._submit(auto=True)

    # ---- Submit --------------------------------------------------------------

    def build_answers(self) -> List[Optional[str]]:
        return [self.answers.get(i, self.placeholder) for i in range(self.total_questions)]

    def elapsed_seconds(self) -> int:
        if self.started_at is None:
            return 0
        return max(0, int(round(self.clock() - self.started_at)))

    async def submit(self, confirm: Optional[Callable[[int], bool]] = None):
        """Explicit submit. With unanswered questions, ``confirm(count)`` decides
        whether to go ahead; returning False keeps the session in progress."""
        if self.submitted or self.state is not SessionState.IN_PROGRESS:
            return self.submission
        unanswered = len(self.unanswered_indices())
        # Once time is up a retry goes through without asking.
        if unanswered and confirm is not None and self.remaining_seconds > 0 and not confirm(unanswered):
            return None
        return await self._submit(auto=False)

    async def _submit(self, auto: bool):
        # Check and set with no await in between.
        if self.submitted or self.state is not SessionState.IN_PROGRESS:
            return self.submission
        self.submitted = True
        self.ticker.stop()
        self.state = SessionState.SUBMITTING

        answers = self.build_answers()
        time_spent = self.elapsed_seconds()
        try:
            submission = await self.client.submit_assignment(
                self.assignment_id, self.student_id, answers, time_spent
            )
        except AlreadySubmitted as e:
            logger.warning(f"Assignment {self.assignment_id} was already submitted by {self.student_id}")
            self.last_error = e
            self.already_submitted = True
            self.state = SessionState.SUBMITTED
            return None
        except Exception as e:
            logger.error(f"Submit failed for assignment {self.assignment_id} ({'auto' if auto else 'manual'}): {str(e)}")
            self.last_error = e
            self.submitted = False
            self.state = SessionState.IN_PROGRESS
            if self.remaining_seconds > 0:
                self.ticker.start(self.tick)
            raise

        self.submission = submission
        self.last_error = None
        self.state = SessionState.SUBMITTED
        logger.info(f"Assignment {self.assignment_id} submitted ({'auto' if auto else 'manual'}) "
                    f"by {self.student_id} after {time_spent}s")
        return submission
