"""Channel adapter between the chat widget and the conversation engine.

The engine was built for voice calls, where caller ID identifies the customer
before the first word. In chat nobody is identified, so the adapter runs a
short phone-collection sub-flow first, keeps the visitor's opening request
aside, and replays it once the customer is known. After that it relays turns
to the engine and rewrites each reply for a text UI.

    [widget] -> chat router -> ChatAdapter -> HttpEngineClient -> [engine]
"""

import structlog

from chat_bridge.core.exceptions import (
    EngineError,
    EngineSessionNotFoundError,
    EngineUnavailableError,
    InvalidMessageError,
)
from chat_bridge.core.settings import BusinessConfig, SessionConfig
from chat_bridge.schemas.chat_schema import (
    BotMessage,
    ProcessMessageResponse,
    StartChatResponse,
)
from chat_bridge.schemas.engine_schema import EngineCustomer, EngineJob, EngineReply
from chat_bridge.schemas.session_schema import (
    AdapterState,
    AppointmentCard,
    ChatSession,
    QuickReply,
    SessionMetadata,
    SessionStatus,
)
from chat_bridge.services import quick_replies
from chat_bridge.services.chat_state import AdapterEvent, transition
from chat_bridge.services.chat_text import (
    extract_phone,
    invalid_phone_prompt,
    normalize_reply_text,
    phone_prompt,
)
from chat_bridge.services.customer_directory import (
    CustomerDirectory,
    EngineCustomerDirectory,
)
from chat_bridge.services.demo_ladder import DemoLadder
from chat_bridge.services.engine_client import ConversationEngine
from chat_bridge.services.session_store import SessionStore

logger = structlog.get_logger()

GREETING_STATE = "greeting"
PHONE_COLLECT_STATE = "phone_collect"
NAME_COLLECT_STATE = "new_customer_name"
ISSUE_STATE = "issue_discovery"

UNCLEAR_REPLY = "I'm sorry, I didn't catch that. Could you try again?"
REPEAT_REPLY = "Sorry, something went wrong on our end. Could you say that again?"


class ChatAdapter:
    """Runs chat conversations on top of the engine and the session store."""

    def __init__(
        self,
        store: SessionStore,
        engine: ConversationEngine,
        business: BusinessConfig,
        config: SessionConfig,
        directory: CustomerDirectory | None = None,
        demo_ladder: DemoLadder | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._business = business
        self._config = config
        self._directory = directory or EngineCustomerDirectory(engine)
        self._ladder = demo_ladder or DemoLadder(business)

    # --- Public interface ---

    async def start_chat(
        self,
        tenant_id: str | None = None,
        metadata: SessionMetadata | dict | None = None,
    ) -> StartChatResponse:
        """Open a session and greet the visitor.

        Falls back to the demo ladder when the engine is unhealthy or cannot
        start a conversation.
        """
        session = await self._store.create(
            tenant_id or self._business.tenant_id, metadata
        )
        reply = await self._welcome(session)
        self._record_bot(session, reply)
        await self._store.save(session)
        return StartChatResponse(session_id=session.session_id, message=reply)

    async def process_message(
        self, session_id: str, text: str, tenant_id: str | None = None
    ) -> ProcessMessageResponse:
        """Handle one visitor turn.

        Raises:
            InvalidMessageError: ``text`` is blank.
        """
        cleaned = text.strip()
        if not cleaned:
            raise InvalidMessageError()
        cleaned = cleaned[: self._config.max_message_length]

        tenant_id = tenant_id or self._business.tenant_id
        session = await self._store.get(tenant_id, session_id)
        if (
            session is None
            or session.status is not SessionStatus.ACTIVE
            or session.adapter_state is AdapterState.ENDED
        ):
            logger.info(
                "Message for unknown or ended session",
                session_id=session_id,
                tenant_id=tenant_id,
            )
            return ProcessMessageResponse(should_restart=True)

        session.messages.append(self._store.build_message("user", cleaned))
        reply = await self._handle_turn(session, cleaned)
        self._record_bot(session, reply)
        await self._store.save(session)

        if reply.end_chat:
            await self._store.destroy(tenant_id, session_id)
            logger.info(
                "Chat completed",
                session_id=session_id,
                tenant_id=tenant_id,
                demo=session.in_demo_mode,
            )
        return ProcessMessageResponse(message=reply)

    async def end_chat(self, session_id: str, tenant_id: str | None = None) -> bool:
        """End a chat at the visitor's request. Returns False if nothing to end."""
        tenant_id = tenant_id or self._business.tenant_id
        session = await self._store.get(tenant_id, session_id)
        if session is None or session.status is not SessionStatus.ACTIVE:
            return False

        if session.engine_session_id is not None:
            try:
                await self._engine.end_session(session.engine_session_id)
            except EngineError as e:
                logger.warning(
                    "Engine end_session failed",
                    session_id=session_id,
                    tenant_id=tenant_id,
                    error=e.message,
                )

        if session.adapter_state is not AdapterState.ENDED:
            session.adapter_state = transition(session.adapter_state, AdapterEvent.END)
        await self._store.save(session)
        await self._store.destroy(tenant_id, session_id)
        return True

    async def get_session(
        self, session_id: str, tenant_id: str | None = None
    ) -> ChatSession | None:
        return await self._store.get(tenant_id or self._business.tenant_id, session_id)

    async def get_active_session_count(self, tenant_id: str | None = None) -> int:
        return await self._store.active_count(tenant_id)

    # --- Turn handling ---

    async def _handle_turn(self, session: ChatSession, text: str) -> BotMessage:
        if session.in_demo_mode:
            return self._advance_demo(session)

        match session.adapter_state:
            case AdapterState.NEW:
                return await self._welcome(session)
            case AdapterState.WELCOMED if session.visitor_phone is None:
                return self._ask_for_phone(session, text)
            case AdapterState.WELCOMED:
                return await self._reidentify(session, text)
            case AdapterState.AWAITING_PHONE:
                return await self._identify(session, text)
            case AdapterState.NEW_CUSTOMER:
                return await self._collect_name(session, text)
            case _:
                return await self._relay_and_replay(session, text, AdapterEvent.ROUTE)

    async def _welcome(self, session: ChatSession) -> BotMessage:
        health = await self._engine.health()
        reply: BotMessage | None = None
        if health.is_ok:
            try:
                reply = await self._start_engine_conversation(session)
            except EngineError as e:
                logger.warning(
                    "Engine start failed, using demo ladder",
                    session_id=session.session_id,
                    tenant_id=session.tenant_id,
                    error=e.message,
                )
        else:
            logger.warning(
                "Engine unhealthy, using demo ladder",
                session_id=session.session_id,
                tenant_id=session.tenant_id,
            )
        if reply is None:
            reply = self._start_demo(session)
        session.adapter_state = transition(session.adapter_state, AdapterEvent.START)
        return reply

    async def _start_engine_conversation(self, session: ChatSession) -> BotMessage:
        started = await self._engine.start_session(session.tenant_id)
        session.engine_session_id = started.session_id
        session.demo_step = None
        session.conversation_state = GREETING_STATE
        if started.greeting:
            text = normalize_reply_text(started.greeting, self._business)
        else:
            text = (
                f"Hi there! 👋 Welcome to {self._business.name}. "
                "How can we help you today?"
            )
        buttons = started.quick_replies or [
            QuickReply(label=label, value=label)
            for label in self._business.initial_quick_replies
        ]
        return self._bot(text, GREETING_STATE, fallback_replies=buttons)

    def _ask_for_phone(self, session: ChatSession, text: str) -> BotMessage:
        if session.pending_intent is None:
            session.pending_intent = text
        session.adapter_state = transition(
            session.adapter_state, AdapterEvent.FIRST_INPUT
        )
        session.conversation_state = PHONE_COLLECT_STATE
        return self._bot(phone_prompt(text), PHONE_COLLECT_STATE)

    async def _identify(self, session: ChatSession, text: str) -> BotMessage:
        phone = extract_phone(text)
        if phone is None:
            return self._bot(invalid_phone_prompt(), PHONE_COLLECT_STATE)

        session.visitor_phone = phone
        customer = await self._find_customer(session, phone)
        if customer is None:
            session.adapter_state = transition(
                session.adapter_state, AdapterEvent.PHONE_UNMATCHED
            )
            session.conversation_state = NAME_COLLECT_STATE
            return self._bot(
                "Thanks! Looks like you're new to us. What's your name?",
                NAME_COLLECT_STATE,
            )

        self._apply_customer(session, customer)
        session.adapter_state = transition(
            session.adapter_state, AdapterEvent.PHONE_MATCHED
        )
        if self._replay_enabled(session):
            replayed = await self._replay_intent(session)
            if replayed is not None:
                return replayed

        session.conversation_state = ISSUE_STATE
        first_name = (customer.name or "").split(" ")[0]
        greeting = f"Welcome back, {first_name}!" if first_name else "Welcome back!"
        return self._bot(f"{greeting} How can we help you today?", ISSUE_STATE)

    async def _reidentify(self, session: ChatSession, text: str) -> BotMessage:
        """After an engine restart the phone is known: look it up again, no prompt."""
        customer = await self._find_customer(session, session.visitor_phone or "")
        if customer is not None:
            self._apply_customer(session, customer)
        return await self._relay_and_replay(
            session, text, AdapterEvent.IDENTIFIED_INPUT
        )

    async def _collect_name(self, session: ChatSession, text: str) -> BotMessage:
        session.visitor_name = text
        return await self._relay_and_replay(session, text, AdapterEvent.ROUTE)

    @staticmethod
    def _apply_customer(session: ChatSession, customer: EngineCustomer) -> None:
        session.customer_found = True
        session.visitor_name = customer.name
        session.visitor_address = customer.address

    def _replay_enabled(self, session: ChatSession) -> bool:
        if session.pending_intent is None:
            return False
        if session.customer_found:
            return self._config.replay_intent_returning
        return self._config.replay_intent_new

    async def _relay_and_replay(
        self, session: ChatSession, text: str, event: AdapterEvent
    ) -> BotMessage:
        """Relay a turn, then deliver a still-held opening request if one is due.

        An earlier replay may have hit an unavailable engine or a lost engine
        session; the request stays held until a turn reaches the engine.
        """
        reply, delivered = await self._deliver(session, text, event)
        if (
            delivered
            and session.adapter_state is AdapterState.ENGINE_ROUTED
            and self._replay_enabled(session)
        ):
            replayed = await self._replay_intent(session)
            if replayed is not None:
                return replayed
        return reply

    async def _replay_intent(self, session: ChatSession) -> BotMessage | None:
        """Send the held opening request to the engine; clear it once delivered."""
        intent = session.pending_intent
        if intent is None:
            return None
        reply, delivered = await self._deliver(session, intent, AdapterEvent.ROUTE)
        if delivered:
            session.pending_intent = None
            logger.info(
                "Replayed pending intent",
                session_id=session.session_id,
                tenant_id=session.tenant_id,
            )
        return reply

    async def _find_customer(
        self, session: ChatSession, phone: str
    ) -> EngineCustomer | None:
        """Directory lookup; any failure continues as an unknown customer."""
        try:
            return await self._directory.find_by_phone(phone, session.engine_session_id)
        except Exception:
            logger.exception(
                "Customer lookup failed, continuing as new customer",
                session_id=session.session_id,
                tenant_id=session.tenant_id,
            )
            return None

    async def _deliver(
        self, session: ChatSession, text: str, event: AdapterEvent
    ) -> tuple[BotMessage, bool]:
        """Forward a turn to the engine; the adapter state moves only on success.

        Returns the reply to show and whether the engine accepted the turn.
        """
        try:
            if session.engine_session_id is None:
                raise EngineSessionNotFoundError("<none>")
            engine_reply = await self._engine.send_message(
                session.engine_session_id, text, session.tenant_id
            )
        except EngineSessionNotFoundError:
            return await self._restart(session), False
        except EngineUnavailableError as e:
            logger.warning(
                "Engine unavailable",
                session_id=session.session_id,
                tenant_id=session.tenant_id,
                error=e.message,
            )
            return self._apology(session), False
        except EngineError as e:
            logger.warning(
                "Engine reply unusable",
                session_id=session.session_id,
                tenant_id=session.tenant_id,
                error=e.message,
            )
            return self._bot(REPEAT_REPLY, session.conversation_state), False

        session.adapter_state = transition(session.adapter_state, event)
        return self._render_engine_reply(session, engine_reply), True

    async def _restart(self, session: ChatSession) -> BotMessage:
        """Engine forgot the conversation: greet again instead of failing."""
        logger.info(
            "Engine session lost, restarting conversation",
            session_id=session.session_id,
            tenant_id=session.tenant_id,
            engine_session_id=session.engine_session_id,
        )
        session.adapter_state = transition(
            session.adapter_state, AdapterEvent.ENGINE_SESSION_LOST
        )
        session.engine_session_id = None
        try:
            return await self._start_engine_conversation(session)
        except EngineError as e:
            logger.warning(
                "Engine restart failed",
                session_id=session.session_id,
                tenant_id=session.tenant_id,
                error=e.message,
            )
            return self._apology(session)

    def _render_engine_reply(
        self, session: ChatSession, engine_reply: EngineReply
    ) -> BotMessage:
        state = engine_reply.state or session.conversation_state
        session.conversation_state = state
        if engine_reply.message:
            text = normalize_reply_text(engine_reply.message, self._business)
        else:
            text = UNCLEAR_REPLY
        if engine_reply.end_chat:
            session.adapter_state = transition(
                session.adapter_state, AdapterEvent.COMPLETE
            )
        return self._bot(
            text,
            state,
            fallback_replies=engine_reply.quick_replies,
            card=self._appointment_card(engine_reply.job),
            end_chat=engine_reply.end_chat,
        )

    def _apology(self, session: ChatSession) -> BotMessage:
        return self._bot(
            "Sorry, I'm having trouble connecting right now. Please try again in "
            f"a moment or call us at {self._business.fallback_phone}.",
            session.conversation_state,
        )

    # --- Degraded mode ---

    def _start_demo(self, session: ChatSession) -> BotMessage:
        cursor, step = self._ladder.first()
        session.demo_step = cursor
        session.conversation_state = step.state
        return self._bot(step.text, step.state)

    def _advance_demo(self, session: ChatSession) -> BotMessage:
        cursor, step = self._ladder.advance(session.demo_step or 0)
        session.demo_step = cursor
        session.conversation_state = step.state
        complete = self._ladder.is_complete(cursor)
        if complete:
            session.adapter_state = transition(
                session.adapter_state, AdapterEvent.COMPLETE
            )
        return self._bot(step.text, step.state, end_chat=complete)

    # --- Reply shaping ---

    @staticmethod
    def _bot(
        text: str,
        state: str | None,
        fallback_replies: list[QuickReply] | None = None,
        card: AppointmentCard | None = None,
        end_chat: bool = False,
    ) -> BotMessage:
        """Build a reply; free-text states never carry buttons."""
        if end_chat or quick_replies.is_free_text(state):
            buttons: list[QuickReply] = []
        else:
            buttons = quick_replies.resolve(state) or list(fallback_replies or [])
        return BotMessage(
            text=text,
            quick_replies=buttons,
            card=card,
            state=state,
            end_chat=end_chat,
        )

    @staticmethod
    def _appointment_card(job: EngineJob | None) -> AppointmentCard | None:
        if job is None:
            return None
        return AppointmentCard(
            job_id=str(job.id) if job.id is not None else None,
            date=job.date,
            time=job.time or job.arrival_window,
            technician=job.technician,
            service=job.service,
        )

    def _record_bot(self, session: ChatSession, reply: BotMessage) -> None:
        session.messages.append(
            self._store.build_message(
                "bot",
                reply.text,
                quick_replies=reply.quick_replies or None,
                card=reply.card,
            )
        )
