"""
Máquina de estados do modo de análise.

    single  --pedir comparação-->  comparisonSetup  --2º arquivo-->  comparison
      ^                                 |   ^                          |
      +------- upload de arquivo único -+   +----- pedir comparação ---+

Cada modo é um tipo próprio, então combinações ilegais (arquivo atual e par
ao mesmo tempo, par sem arquivos, etc.) não podem ser construídas.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from core.models import ComparisonPair, ProcessedFile
from core.session_store import SessionStore

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    SINGLE = "single"
    COMPARISON_SETUP = "comparisonSetup"
    COMPARISON = "comparison"


class Event(str, Enum):
    REQUEST_COMPARISON = "request_comparison"
    SINGLE_UPLOADED = "single_uploaded"
    COMPARISON_UPLOADED = "comparison_uploaded"
    CLEAR = "clear"


class InvalidTransitionError(Exception):
    """Evento não permitido no modo atual."""


# =======================
# States
# =======================

@dataclass(frozen=True)
class SingleState:
    current_file: Optional[ProcessedFile] = None

    mode: ClassVar[Mode] = Mode.SINGLE
    comparison_pair: ClassVar[None] = None
    files_in_progress: ClassVar[tuple[ProcessedFile, ...]] = ()


@dataclass(frozen=True)
class ComparisonSetupState:
    files_in_progress: tuple[ProcessedFile, ...] = ()

    mode: ClassVar[Mode] = Mode.COMPARISON_SETUP
    current_file: ClassVar[None] = None
    comparison_pair: ClassVar[None] = None

    def __post_init__(self) -> None:
        if len(self.files_in_progress) > 1:
            raise ValueError("comparisonSetup guarda no máximo um arquivo")


@dataclass(frozen=True)
class ComparisonState:
    comparison_pair: ComparisonPair

    mode: ClassVar[Mode] = Mode.COMPARISON
    current_file: ClassVar[None] = None
    files_in_progress: ClassVar[tuple[ProcessedFile, ...]] = ()

    def __post_init__(self) -> None:
        if self.comparison_pair is None:
            raise ValueError("comparison exige um par de arquivos")


SessionState = Union[SingleState, ComparisonSetupState, ComparisonState]

_ALL_MODES = frozenset(Mode)

TRANSITIONS: dict[Event, frozenset[Mode]] = {
    Event.REQUEST_COMPARISON: _ALL_MODES,
    Event.SINGLE_UPLOADED: _ALL_MODES,
    Event.COMPARISON_UPLOADED: frozenset({Mode.COMPARISON_SETUP}),
    Event.CLEAR: _ALL_MODES,
}


# =======================
# Controller
# =======================

class ModeController:
    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._state: SessionState = SingleState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> Mode:
        return self._state.mode

    def restore(self) -> SessionState:
        """
        Reconstrói o estado salvo, nesta ordem de prioridade:
          1) par de comparação completo -> comparison
          2) arquivo atual             -> single
          3) exatamente 1 arquivo em andamento -> comparisonSetup
          4) nada                      -> single vazio
        """
        pair = self._store.load_comparison_pair()
        if pair is not None:
            state: SessionState = ComparisonState(pair)
        else:
            current = self._store.load_current_file()
            if current is not None:
                state = SingleState(current)
            else:
                files = self._store.load_files_in_progress()
                if len(files) == 1:
                    state = ComparisonSetupState(tuple(files))
                else:
                    state = SingleState()

        self._state = state
        self._persist()
        logger.info("Sessão restaurada no modo %s", state.mode.value)
        return state

    def enter_comparison_setup(self) -> SessionState:
        return self._apply(Event.REQUEST_COMPARISON, ComparisonSetupState())

    def single_file_uploaded(self, file: ProcessedFile) -> SessionState:
        return self._apply(Event.SINGLE_UPLOADED, SingleState(file))

    def comparison_file_uploaded(self, file: ProcessedFile) -> SessionState:
        self._check(Event.COMPARISON_UPLOADED)
        files = self._state.files_in_progress + (file,)
        if len(files) == 2:
            # ordem de upload: o primeiro enviado é sempre o fileA
            new_state: SessionState = ComparisonState(ComparisonPair(file_a=files[0], file_b=files[1]))
        else:
            new_state = ComparisonSetupState(files)
        return self._apply(Event.COMPARISON_UPLOADED, new_state)

    def clear(self) -> SessionState:
        return self._apply(Event.CLEAR, SingleState())

    def _check(self, event: Event) -> None:
        if self._state.mode not in TRANSITIONS[event]:
            raise InvalidTransitionError(
                f"Evento '{event.value}' não permitido no modo '{self._state.mode.value}'"
            )

    def _apply(self, event: Event, new_state: SessionState) -> SessionState:
        self._check(event)
        old_mode = self._state.mode
        self._state = new_state
        self._persist()
        logger.info("%s: %s -> %s", event.value, old_mode.value, new_state.mode.value)
        return new_state

    def _persist(self) -> None:
        state = self._state
        self._store.save_current_file(state.current_file)
        self._store.save_comparison_pair(state.comparison_pair)
        self._store.save_files_in_progress(state.files_in_progress)
