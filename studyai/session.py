"""
StudyAI — Study Session
========================
Per-user state machine around the engine:

    idle ─► generating ─► ready ─► exam_active ─► grading ─► graded
                            ▲  (chat open/close)     ▲                 │
                            └──── exit exam          └──── retake ─────┘

  • one generation-class request in flight at a time (SessionBusy)
  • results are applied only on success, and only if no reset happened
    meanwhile (epoch check)
  • failures always fall back to a stable state
"""

import uuid
import logging
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from studyai.ai_engine import StudyEngine
from studyai.core.errors import InvalidInput, InvalidTransition, SessionBusy, SessionNotFound, StudyAIError
from studyai.graph.builder import build, merge
from studyai.schemas.exam import AnswerSubmission, ExamSession
from studyai.schemas.mindmap import MindMapGraph
from studyai.schemas.requests import ChatMessage
from studyai.schemas.study import StudyBundle, StudySettings
from studyai.services.content_service import prepare_content

logger = logging.getLogger(__name__)

NO_ANSWER = "No answer"


class SessionState(str, Enum):
    idle = "idle"
    generating = "generating"
    ready = "ready"
    exam_active = "exam_active"
    grading = "grading"
    graded = "graded"


def build_chat_context(bundle: StudyBundle) -> str:
    """Deterministic text block every chat/exam/grade request is grounded in."""
    key_points = "\n".join(bundle.key_points)
    flashcards = "\n".join(f"{card.front}:{card.back}" for card in bundle.flashcards)
    return (
        f"Title: {bundle.title}\n"
        f"Summary: {bundle.summary}\n"
        f"Key Points: {key_points}\n"
        f"Flashcards: {flashcards}"
    )


class SessionSnapshot(BaseModel):
    """Read-only view of a session returned by the API."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    state: SessionState
    topic: str
    settings: StudySettings
    in_flight: bool = Field(..., alias="inFlight")
    chat_open: bool = Field(..., alias="chatOpen")
    bundle: Optional[StudyBundle] = None
    graph: Optional[MindMapGraph] = None
    exam: Optional[ExamSession] = None
    chat_history: List[ChatMessage] = Field(default=[], alias="chatHistory")
    error: Optional[str] = None


class StudySession:
    def __init__(self, engine: StudyEngine, session_id: Optional[str] = None):
        self.id = session_id or uuid.uuid4().hex
        self.engine = engine
        self.settings = StudySettings()
        self._epoch = 0
        self._clear()

    def _clear(self) -> None:
        self.state = SessionState.idle
        self.topic = ""
        self.bundle: Optional[StudyBundle] = None
        self.graph: Optional[MindMapGraph] = None
        self.exam: Optional[ExamSession] = None
        self.chat_history: List[ChatMessage] = []
        self.chat_open = False
        self.error: Optional[str] = None
        self.in_flight = False
        self.chat_in_flight = False

    # ── Guards ───────────────────────────────────────────────────────────────

    def _begin(self) -> int:
        if self.in_flight:
            raise SessionBusy("A request is already in progress.")
        self.in_flight = True
        self.error = None
        return self._epoch

    def _current(self, epoch: int) -> bool:
        """False once a reset has superseded the request started at `epoch`."""
        return epoch == self._epoch

    def _finish(self, epoch: int) -> None:
        if self._current(epoch):
            self.in_flight = False

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(f"Not allowed in state '{self.state.value}' (needs {allowed}).")

    @property
    def chat_context(self) -> str:
        return build_chat_context(self.bundle) if self.bundle else self.topic

    # ── Generation ───────────────────────────────────────────────────────────

    async def generate(
        self,
        topic: str,
        input_type: str = "text",
        file_data: Optional[str] = None,
        mime_type: Optional[str] = None,
        settings: Optional[StudySettings] = None,
    ) -> StudyBundle:
        if not topic.strip() and not file_data:
            raise InvalidInput("Please enter a topic or upload a file!")
        if self.in_flight:
            raise SessionBusy("A request is already in progress.")

        kept_settings = settings or self.settings
        self.reset()
        self.settings = kept_settings
        epoch = self._begin()
        self.topic = topic
        self.state = SessionState.generating
        logger.info(f"[SESSION] {self.id} generating...")

        done = False
        try:
            content = await prepare_content(topic, input_type, file_data, mime_type)
            bundle = await self.engine.generate_bundle(topic, content, self.settings)
            graph = build(bundle.mind_map_edges)
            done = True
        except Exception as e:
            if self._current(epoch):
                self.error = str(e)
                logger.warning(f"[SESSION] {self.id} generation failed: {e}")
            raise
        finally:
            if not done and self._current(epoch):
                self.state = SessionState.idle
            self._finish(epoch)

        if self._current(epoch):
            self.bundle, self.graph = bundle, graph
            self.state = SessionState.ready
            logger.info(f"[SESSION] {self.id} ✓ ready: {bundle.title!r}")
        return bundle

    async def expand_node(self, node_label: str) -> MindMapGraph:
        self._require(SessionState.ready)
        epoch = self._begin()
        bundle = self.bundle
        try:
            expansion = await self.engine.expand_node(
                node_label, self.chat_context, self.settings, topic=self.topic
            )
            all_edges = bundle.mind_map_edges + expansion.new_edges
            graph = merge(bundle.mind_map_edges, expansion.new_edges)
        except Exception as e:
            if self._current(epoch):
                self.error = f"Could not expand node: {e}"
            raise
        finally:
            self._finish(epoch)

        if self._current(epoch):
            self.bundle = bundle.model_copy(update={"mind_map_edges": all_edges})
            self.graph = graph
            logger.info(f"[SESSION] {self.id} ✓ expanded {node_label!r} (+{len(expansion.new_edges)} edges)")
        return graph

    # ── Exam ─────────────────────────────────────────────────────────────────

    async def start_exam(self) -> ExamSession:
        self._require(SessionState.ready, SessionState.exam_active, SessionState.graded)
        epoch = self._begin()
        self.state = SessionState.exam_active
        self.exam = ExamSession()
        done = False
        try:
            exam = await self.engine.generate_exam(self.chat_context, self.settings, topic=self.topic)
            done = True
        except Exception as e:
            if self._current(epoch):
                self.error = "Exam generation failed"
                logger.warning(f"[SESSION] {self.id} exam generation failed: {e}")
            raise
        finally:
            if not done and self._current(epoch):
                self.exam = None
                self.state = SessionState.ready
            self._finish(epoch)

        if self._current(epoch):
            self.exam = ExamSession(questions=exam.exam)
            logger.info(f"[SESSION] {self.id} ✓ exam ready ({len(exam.exam)} questions)")
        return self.exam

    def answer(self, question_id: int, text: str) -> None:
        self._require(SessionState.exam_active)
        if self.in_flight or not self.exam or not self.exam.questions:
            raise InvalidTransition("The exam is not ready yet.")
        if question_id not in {q.id for q in self.exam.questions}:
            raise InvalidInput(f"Unknown question id {question_id}.")
        self.exam.answers[question_id] = text

    async def submit_exam(self) -> ExamSession:
        self._require(SessionState.exam_active)
        if not self.exam or not self.exam.questions:
            raise InvalidTransition("The exam is not ready yet.")
        epoch = self._begin()
        self.state = SessionState.grading

        submissions = [
            AnswerSubmission(
                question_id=q.id,
                question=q.question,
                answer=self.exam.answers.get(q.id) or NO_ANSWER,
            )
            for q in self.exam.questions
        ]
        done = False
        try:
            grading = await self.engine.grade_exam(
                submissions, self.chat_context, self.settings, topic=self.topic
            )
            done = True
        except Exception as e:
            if self._current(epoch):
                self.error = "Grading failed. Please try again."
                logger.warning(f"[SESSION] {self.id} grading failed: {e}")
            raise
        finally:
            if not done and self._current(epoch):
                self.state = SessionState.exam_active
                self.exam.grading = None
            self._finish(epoch)

        if self._current(epoch):
            self.exam.grading = grading
            self.state = SessionState.graded
            logger.info(f"[SESSION] {self.id} ✓ graded: {grading.score}")
        return self.exam

    async def retake_exam(self, regenerate: bool = True) -> ExamSession:
        """Fresh questions by default; otherwise the same questions, answers cleared."""
        self._require(SessionState.graded)
        if regenerate:
            return await self.start_exam()
        if self.in_flight:
            raise SessionBusy("A request is already in progress.")
        self.exam = ExamSession(questions=self.exam.questions)
        self.state = SessionState.exam_active
        return self.exam

    def exit_exam(self) -> None:
        self._require(SessionState.exam_active, SessionState.graded)
        if self.in_flight:
            raise SessionBusy("A request is already in progress.")
        self.exam = None
        self.state = SessionState.ready

    # ── Chat ─────────────────────────────────────────────────────────────────

    def open_chat(self) -> None:
        self._require(SessionState.ready, SessionState.exam_active, SessionState.graded)
        self.chat_open = True

    def close_chat(self) -> None:
        self.chat_open = False

    async def send_chat(self, message: str) -> str:
        if not message.strip():
            raise InvalidInput("Message cannot be empty.")
        if not self.chat_open:
            raise InvalidTransition("Open the chat first.")
        if self.chat_in_flight:
            raise SessionBusy("Waiting for the previous reply.")

        epoch = self._epoch
        self.chat_in_flight = True
        self.chat_history.append(ChatMessage(role="user", content=message))
        try:
            reply = await self.engine.chat(self.chat_history, self.chat_context, self.settings)
        except StudyAIError as e:
            reply = f"Error: {e.message}"
            logger.warning(f"[SESSION] {self.id} chat failed: {e}")
        finally:
            if self._current(epoch):
                self.chat_in_flight = False

        if self._current(epoch):
            self.chat_history.append(ChatMessage(role="ai", content=reply))
        return reply

    # ── Reset / view ─────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Drop bundle, graph, exam and chat at once; late replies are ignored."""
        self._epoch += 1
        self._clear()
        logger.info(f"[SESSION] {self.id} cleared")

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            state=self.state,
            topic=self.topic,
            settings=self.settings,
            in_flight=self.in_flight,
            chat_open=self.chat_open,
            bundle=self.bundle,
            graph=self.graph,
            exam=self.exam,
            chat_history=list(self.chat_history),
            error=self.error,
        )


class SessionStore:
    """In-memory sessions, one per user; nothing survives a restart."""

    def __init__(self):
        self._sessions: Dict[str, StudySession] = {}

    def create(self, engine: StudyEngine) -> StudySession:
        session = StudySession(engine)
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> StudySession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(f"Session '{session_id}' not found.")

    def delete(self, session_id: str) -> None:
        self.get(session_id)
        del self._sessions[session_id]


store = SessionStore()
