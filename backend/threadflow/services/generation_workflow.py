from __future__ import annotations
"""Generation workflow — one attempt from credit check to dashboard update.

    Idle → CheckingQuota → Generating → Persisting → DebitingCredit → Done
                 ↘            ↘             ↘              ↘
                                   Failed

Ordering is what makes the accounting hold:
- no outbound call is made unless the balance is positive;
- a Project is written only after the gateway succeeds;
- credits are debited only after the Project is committed.

A failed debit does not fail the attempt. It is returned as a DebitResult
and recorded in the accounting sink so the balance can be reconciled.
Nothing is retried: every failure ends the attempt and the user starts a
new one.
"""

import asyncio
import enum
import logging
import threading
import time
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from threadflow.config import get_settings
from threadflow.errors import (
    GenerationInProgressError,
    GenerationTimeoutError,
    NonFatalAccountingError,
    PersistenceError,
    QuotaExceededError,
    ThreadFlowError,
    UpstreamServiceError,
)
from threadflow.schemas.script import Script
from threadflow.services.profile_store import ProfileStore
from threadflow.services.project_store import ProjectStore
from threadflow.services.script_gateway import ScriptGenerator, normalize_vibe
from threadflow.services.sessions import DashboardState, SessionContext, SessionRegistry

logger = logging.getLogger(__name__)

OUT_OF_CREDITS_MESSAGE = "You've used all your free credits. Upgrade to continue creating."


class GenerationState(str, enum.Enum):
    IDLE = "idle"
    CHECKING_QUOTA = "checking_quota"
    GENERATING = "generating"
    PERSISTING = "persisting"
    DEBITING_CREDIT = "debiting_credit"
    DONE = "done"
    FAILED = "failed"


_S = GenerationState
VALID_TRANSITIONS: dict[GenerationState, set[GenerationState]] = {
    _S.IDLE: {_S.CHECKING_QUOTA, _S.FAILED},
    _S.CHECKING_QUOTA: {_S.GENERATING, _S.FAILED},
    _S.GENERATING: {_S.PERSISTING, _S.FAILED},
    _S.PERSISTING: {_S.DEBITING_CREDIT, _S.FAILED},
    _S.DEBITING_CREDIT: {_S.DONE, _S.FAILED},
    _S.DONE: set(),  # terminal state
    _S.FAILED: set(),  # terminal state
}


@dataclass
class GenerationAttempt:
    """Book-keeping for one attempt; ``history`` lists every state entered."""

    request_id: str
    context: SessionContext
    thread_content: str
    vibe: str
    state: GenerationState = GenerationState.IDLE
    history: list[GenerationState] = field(default_factory=lambda: [GenerationState.IDLE])
    error: ThreadFlowError | None = None

    def advance(self, target: GenerationState) -> None:
        if target not in VALID_TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {target.value}")
        logger.debug("[%s] %s -> %s", self.request_id, self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def fail(self, error: ThreadFlowError) -> None:
        self.error = error
        if self.state not in (GenerationState.DONE, GenerationState.FAILED):
            self.advance(GenerationState.FAILED)


@dataclass
class DebitResult:
    ok: bool
    balance: int
    error: str | None = None


@dataclass
class AccountingFailure:
    request_id: str
    user_id: str
    project_id: str
    expected_balance: int
    error: str
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "expected_balance": self.expected_balance,
            "error": self.error,
            "at": self.at.isoformat(),
        }


@dataclass
class GenerationOutcome:
    request_id: str
    project_id: str
    vibe: str
    script: Script
    debit: DebitResult
    attempt: GenerationAttempt
    applied_to_session: bool = False

    @property
    def credits_remaining(self) -> int:
        return self.debit.balance

    @property
    def accounting_ok(self) -> bool:
        return self.debit.ok


class GenerationWorkflow:
    """Runs generation attempts; at most one in flight per session."""

    service_name = "script_generation"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        generator: ScriptGenerator,
        registry: SessionRegistry,
        *,
        default_timeout: float | None = None,
        sink_size: int | None = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.generator = generator
        self.registry = registry
        self.default_timeout = default_timeout or settings.GENERATION_TIMEOUT
        self.accounting_failures: deque[AccountingFailure] = deque(
            maxlen=sink_size or settings.ACCOUNTING_SINK_SIZE,
        )
        self._in_flight: set[str] = set()
        self._claim_lock = threading.Lock()
        self._total_calls = 0
        self._total_succeeded = 0
        self._total_rejected = 0
        self._errors: Counter[str] = Counter()
        self._total_latency_ms = 0

    # ── Public API ──────────────────────────────

    async def run(
        self,
        context: SessionContext,
        thread_content: str,
        vibe: str | None = None,
        *,
        timeout: float | None = None,
    ) -> GenerationOutcome:
        """Run one attempt for ``context``.

        Raises the ThreadFlowError that ended the attempt. The dashboard of
        the calling session is updated only if it is still open and this is
        still its active request.
        """
        self._claim(context.session_id)
        self._total_calls += 1
        start = time.monotonic()
        attempt = GenerationAttempt(
            request_id=uuid.uuid4().hex,
            context=context,
            thread_content=thread_content,
            vibe=normalize_vibe(vibe),
        )
        self.registry.begin(context.session_id, attempt.request_id)
        logger.info(
            "Generation %s started user=%s session=%s vibe=%s",
            attempt.request_id, context.user_id, context.session_id, attempt.vibe,
        )

        try:
            outcome = await self._execute(attempt, timeout or self.default_timeout)
        except ThreadFlowError as e:
            self._on_failure(attempt, e)
            raise
        except Exception as e:
            logger.exception("Generation %s crashed", attempt.request_id)
            error = ThreadFlowError("Failed to generate blueprint")
            self._on_failure(attempt, error)
            raise error from e
        finally:
            self._release(context.session_id)
            self._total_latency_ms += int((time.monotonic() - start) * 1000)

        self._total_succeeded += 1
        outcome.applied_to_session = self.registry.apply(
            context.session_id,
            attempt.request_id,
            lambda state: _show_script(state, outcome),
        )
        logger.info(
            "Generation %s done project=%s scenes=%d credits=%d accounting_ok=%s",
            attempt.request_id, outcome.project_id, len(outcome.script.scenes),
            outcome.credits_remaining, outcome.accounting_ok,
        )
        return outcome

    def is_in_flight(self, session_id: str) -> bool:
        with self._claim_lock:
            return session_id in self._in_flight

    def get_metrics(self) -> dict[str, Any]:
        return {
            "service": self.service_name,
            "total_calls": self._total_calls,
            "succeeded": self._total_succeeded,
            "rejected_in_flight": self._total_rejected,
            "errors": dict(self._errors),
            "avg_latency_ms": (
                self._total_latency_ms // self._total_calls if self._total_calls else 0
            ),
            "in_flight": len(self._in_flight),
            "accounting_failures": [f.as_dict() for f in self.accounting_failures],
        }

    # ── Steps ───────────────────────────────────

    async def _execute(self, attempt: GenerationAttempt, timeout: float) -> GenerationOutcome:
        ctx = attempt.context

        attempt.advance(GenerationState.CHECKING_QUOTA)
        balance = await self._check_quota(ctx)

        attempt.advance(GenerationState.GENERATING)
        script = await self._generate(attempt, timeout)

        attempt.advance(GenerationState.PERSISTING)
        project_id = await self._persist(attempt, script)

        attempt.advance(GenerationState.DEBITING_CREDIT)
        debit = await self._debit(attempt, project_id, balance)

        attempt.advance(GenerationState.DONE)
        return GenerationOutcome(
            request_id=attempt.request_id,
            project_id=project_id,
            vibe=attempt.vibe,
            script=script,
            debit=debit,
            attempt=attempt,
        )

    async def _check_quota(self, ctx: SessionContext) -> int:
        """Current balance, provisioning the profile on a first visit."""
        try:
            async with self.session_factory() as db:
                profile = await ProfileStore(db).ensure_profile(ctx.user_id, ctx.email)
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load your profile") from e
        balance = profile.credits
        if balance <= 0:
            raise QuotaExceededError(OUT_OF_CREDITS_MESSAGE)
        return balance

    async def _generate(self, attempt: GenerationAttempt, timeout: float) -> Script:
        try:
            return await asyncio.wait_for(
                self.generator.generate(attempt.thread_content, attempt.vibe, timeout=timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeoutError(f"Script generation timed out after {timeout:g}s") from e
        except ThreadFlowError:
            raise
        except Exception as e:
            raise UpstreamServiceError(str(e) or "Failed to call AI service") from e

    async def _persist(self, attempt: GenerationAttempt, script: Script) -> str:
        async with self.session_factory() as db:
            try:
                project = await ProjectStore(db).create(
                    attempt.context.user_id, attempt.thread_content, attempt.vibe, script,
                )
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError("Failed to save your script") from e
            except PersistenceError:
                await db.rollback()
                raise
        return project.id

    async def _debit(self, attempt: GenerationAttempt, project_id: str, balance: int) -> DebitResult:
        new_balance = max(balance - 1, 0)
        owner_id = attempt.context.user_id
        try:
            async with self.session_factory() as db:
                await ProfileStore(db).set_credits(owner_id, new_balance)
                await db.commit()
        except (ThreadFlowError, SQLAlchemyError) as e:
            failure = NonFatalAccountingError(f"Failed to deduct credit: {e}")
            self.accounting_failures.append(AccountingFailure(
                request_id=attempt.request_id,
                user_id=owner_id,
                project_id=project_id,
                expected_balance=new_balance,
                error=failure.message,
            ))
            self._errors[type(failure).__name__] += 1
            logger.error(
                "Generation %s: %s (user=%s project=%s)",
                attempt.request_id, failure.message, owner_id, project_id,
            )
            return DebitResult(ok=False, balance=balance, error=failure.message)
        return DebitResult(ok=True, balance=new_balance)

    # ── Helpers ─────────────────────────────────

    def _claim(self, session_id: str) -> None:
        with self._claim_lock:
            if session_id in self._in_flight:
                self._total_rejected += 1
                raise GenerationInProgressError("A generation is already running for this session")
            self._in_flight.add(session_id)

    def _release(self, session_id: str) -> None:
        with self._claim_lock:
            self._in_flight.discard(session_id)

    def _on_failure(self, attempt: GenerationAttempt, error: ThreadFlowError) -> None:
        attempt.fail(error)
        self._errors[type(error).__name__] += 1
        logger.warning(
            "Generation %s failed in %s: %s",
            attempt.request_id, attempt.history[-2].value, error.message,
        )

        def _show_error(state: DashboardState) -> None:
            state.last_error = error.message

        self.registry.apply(attempt.context.session_id, attempt.request_id, _show_error)


def _show_script(state: DashboardState, outcome: GenerationOutcome) -> None:
    state.view = "script"
    state.scenes = list(outcome.script.scenes)
    state.active_scene = 0
    state.credits = outcome.credits_remaining
    state.last_error = None


_workflow: GenerationWorkflow | None = None


def get_generation_workflow() -> GenerationWorkflow:
    """Process-wide workflow (FastAPI dependency)."""
    global _workflow
    if _workflow is None:
        from threadflow.database import async_session_factory
        from threadflow.services.script_gateway import get_script_generator
        from threadflow.services.sessions import get_session_registry

        _workflow = GenerationWorkflow(
            async_session_factory,
            get_script_generator(),
            get_session_registry(),
        )
    return _workflow
