"""Hybrid orchestration of user turns, model replies and tool calls."""

from nexus.config import Settings
from nexus.errors import SubmissionRejectedError
from nexus.graphs.conversation import RECURSION_LIMIT, create_hybrid_graph
from nexus.graphs.state import FlowState, HybridTurnState, TurnRuntime
from nexus.models.turn import Attachment, Turn, TurnMetadata, TurnRole
from nexus.services.conversation_log import ConversationLog
from nexus.services.prompts import NETWORK_ANOMALY_MESSAGE, RESET_MESSAGE, WELCOME_MESSAGE
from nexus.services.session import SessionAdapter
from nexus.tools.base import ToolInvoker
from nexus.utils.logging import get_logger

logger = get_logger(__name__)


class HybridOrchestrator:
    """Runs one user submission at a time through the hybrid turn graph.

    The orchestrator owns the conversation log and is the only writer to it.
    While a submission is in flight (``is_busy``), further submissions are
    rejected. ``clear`` abandons an in-flight submission: its late replies are
    recognized by their generation and never reach the new log.
    """

    def __init__(
        self,
        session: SessionAdapter,
        tool_invoker: ToolInvoker,
        log: ConversationLog | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            session: Model session adapter
            tool_invoker: Executor for the model's tool calls
            log: Conversation log (a new empty one by default)
            settings: Runtime settings
        """
        self.session = session
        self.tool_invoker = tool_invoker
        self.log = log if log is not None else ConversationLog()
        self.settings = settings or Settings()
        self.graph = create_hybrid_graph()

        self._state = FlowState.IDLE
        self._generation = 0

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def is_busy(self) -> bool:
        """True while a submission is being processed."""
        return self._state is not FlowState.IDLE

    @property
    def generation(self) -> int:
        """Incremented every time the conversation is cleared."""
        return self._generation

    def start(self) -> Turn:
        """Open the conversation with a fresh session and the welcome greeting."""
        self.session.initialize()
        self.log.reset()
        return self.log.record(TurnRole.ASSISTANT, WELCOME_MESSAGE)

    def clear(self) -> Turn:
        """Reset the log and the model session together.

        Any submission still in flight becomes stale. Its pending calls are not
        cancelled, but nothing they return is logged.
        """
        self._generation += 1
        if self.is_busy:
            logger.info(f"Clearing conversation while {self._state}; in-flight replies will be discarded")

        self.session.reset()
        self.log.reset()
        self._state = FlowState.IDLE
        return self.log.record(TurnRole.ASSISTANT, RESET_MESSAGE)

    def validate_submission(self, text: str, attachment: Attachment | None = None) -> None:
        """Check a submission can enter the turn flow.

        Raises:
            SubmissionRejectedError: If busy, or if there is neither text nor an attachment
        """
        if self.is_busy:
            raise SubmissionRejectedError(f"Cannot submit while {self._state}")
        if not text.strip() and attachment is None:
            raise SubmissionRejectedError("A submission needs text or an attachment")

    async def submit(self, text: str, attachment: Attachment | None = None) -> list[Turn]:
        """Process one user submission to completion.

        Args:
            text: User's message (may be empty if an attachment is given)
            attachment: Optional file sent with the message

        Returns:
            The turns this submission added to the log, starting with the user
            turn. Empty if the conversation was cleared before it finished.
            Unexpected failures inside the flow end it with a system turn
            instead of propagating.

        Raises:
            SubmissionRejectedError: If the submission is rejected (see validate_submission)
        """
        self.validate_submission(text, attachment)

        generation = self._generation
        self._state = FlowState.AWAITING_FIRST_MODEL_REPLY
        first_index = len(self.log)

        try:
            handle = self.session.handle
            self.log.record(
                TurnRole.USER,
                text,
                attachment=attachment.for_log() if attachment else None,
                metadata=TurnMetadata(session_id=handle.session_id if handle else None),
            )

            runtime = TurnRuntime(
                session=self.session,
                tool_invoker=self.tool_invoker,
                log=self.log,
                generation=generation,
                current_generation=lambda: self._generation,
                set_flow_state=self._set_state,
                tool_timeout=self.settings.tool_timeout,
            )
            initial_state = HybridTurnState(user_text=text, attachment=attachment)

            await self.graph.ainvoke(
                initial_state.model_dump(),
                {"configurable": {"turn_runtime": runtime}, "recursion_limit": RECURSION_LIMIT},
            )
        except Exception as e:
            logger.error(f"Turn flow failed unexpectedly: {e}", exc_info=True)
            if generation == self._generation:
                handle = self.session.handle
                self.log.record(
                    TurnRole.SYSTEM,
                    NETWORK_ANOMALY_MESSAGE,
                    metadata=TurnMetadata(session_id=handle.session_id if handle else None),
                )
        finally:
            if generation == self._generation:
                self._state = FlowState.IDLE

        if generation != self._generation:
            logger.info("Submission finished after the conversation was cleared")
            return []

        return list(self.log.turns()[first_index:])

    def _set_state(self, state: FlowState) -> None:
        self._state = state


def create_orchestrator(settings: Settings | None = None) -> HybridOrchestrator:
    """Wire an orchestrator to the Anthropic session and the configured tool."""
    from nexus.services.session import ConversationSession
    from nexus.tools import create_tool_invoker

    settings = settings or Settings.from_env()
    return HybridOrchestrator(
        session=ConversationSession(settings=settings),
        tool_invoker=create_tool_invoker(settings),
        settings=settings,
    )
