import logging
from itertools import combinations
from typing import Dict, List, Optional, Tuple

from automaton import Automaton, EMPTY_STATE, state_label


logger = logging.getLogger(__name__)

INITIALIZE = "initialize"
ADD_TRANSITION = "add_transition"
DELETE_STATE = "delete_state"
MERGE_STATES = "merge_states"
NO_STEP = "none"

UNINITIALIZED = "uninitialized"
FILLING_TRANSITIONS = "filling_transitions"
PRUNING_UNREACHABLE = "pruning_unreachable"
MERGING_REDUNDANT = "merging_redundant"
DONE = "done"

PHASES = {
    INITIALIZE: UNINITIALIZED,
    ADD_TRANSITION: FILLING_TRANSITIONS,
    DELETE_STATE: PRUNING_UNREACHABLE,
    MERGE_STATES: MERGING_REDUNDANT,
    NO_STEP: DONE,
}

REQUIRED_ATTRIBUTES = ("states", "alphabet", "start_state", "accept_states")
REQUIRED_OPERATIONS = (
    "get_powerset_of_states",
    "get_epsilon_closure_states",
    "get_reachable_states",
)


class ConversionError(ValueError):
    pass


def find_unreachable_states(dfa: Automaton) -> List[str]:
    """States with no incoming edge from another state, found to a fixed point.

    Removing a batch can leave states that were only entered from that batch,
    so the search repeats on a scratch copy until nothing else turns up.
    The start state is always kept.
    """
    scratch = dfa.copy()
    found: List[str] = []

    while True:
        incoming = set()
        for state in scratch.states:
            for symbol in scratch.alphabet:
                dest = scratch.get_transition(state, symbol)
                if dest is not None and dest != state:
                    incoming.add(dest)

        batch = [
            s
            for s in scratch.states
            if s not in incoming and s != scratch.start_state
        ]
        if not batch:
            break

        for state in batch:
            scratch.remove_state(state)
        found.extend(batch)

    return list(dict.fromkeys(found))


def is_redundant_pair(dfa: Automaton, s1: str, s2: str) -> bool:
    if (s1 in dfa.accept_states) != (s2 in dfa.accept_states):
        return False

    pair = (s1, s2)
    for symbol in dfa.alphabet:
        if dfa.get_transition(s1, symbol) not in pair:
            return False
        if dfa.get_transition(s2, symbol) not in pair:
            return False

    return True


def find_redundant_pairs(dfa: Automaton) -> List[Tuple[str, str]]:
    """Pairs to merge, in order; each search runs on the previously merged copy."""
    scratch = dfa.copy()
    merges: List[Tuple[str, str]] = []

    while True:
        pair = next(
            (
                (s1, s2)
                for s1, s2 in combinations(scratch.states, 2)
                if is_redundant_pair(scratch, s1, s2)
            ),
            None,
        )
        if pair is None:
            return merges

        scratch.merge_states(*pair)
        merges.append(pair)


class ConversionSession:
    def __init__(self, nfa):
        missing = [a for a in REQUIRED_ATTRIBUTES if not hasattr(nfa, a)]
        missing += [
            op for op in REQUIRED_OPERATIONS if not callable(getattr(nfa, op, None))
        ]
        if missing:
            raise TypeError(
                f"{type(nfa).__name__} is not an automaton, missing: {', '.join(missing)}"
            )

        self.source = nfa
        self.working: Optional[Automaton] = None
        self.history: List[Tuple[Automaton, Dict, Tuple[str, ...]]] = []
        self.state_cursor = 0
        self.symbol_cursor = 0
        self.pending_unreachable: Optional[List[str]] = None
        self.pending_redundant: Optional[List[Tuple[str, str]]] = None

    @property
    def steps(self) -> List[Dict]:
        return [step for _, step, _ in self.history]

    def _cursors(self) -> Tuple[int, int]:
        # El salto al siguiente estado se aplica al inicio del próximo paso
        state_index, symbol_index = self.state_cursor, self.symbol_cursor
        alphabet_size = len(self.working.alphabet)

        while state_index < len(self.working.states) and symbol_index >= alphabet_size:
            state_index += 1
            symbol_index = 0

        return state_index, symbol_index

    def get_next_step_kind(self) -> str:
        if self.working is None:
            return INITIALIZE

        state_index, _ = self._cursors()
        if state_index < len(self.working.states):
            return ADD_TRANSITION

        if self.pending_unreachable is None:
            self.pending_unreachable = find_unreachable_states(self.working)
            logger.info("Unreachable states: %s", self.pending_unreachable)
        if self.pending_unreachable:
            return DELETE_STATE

        if self.pending_redundant is None:
            self.pending_redundant = find_redundant_pairs(self.working)
            logger.info("Redundant state pairs: %s", self.pending_redundant)
        if self.pending_redundant:
            return MERGE_STATES

        return NO_STEP

    def current_phase(self) -> str:
        return PHASES[self.get_next_step_kind()]

    def _record(self, step: Dict, computed: Tuple[str, ...]) -> Tuple[Automaton, Dict]:
        self.history.append((self.working.copy(), step, computed))
        logger.debug("Step %d: %s", len(self.history), step["desc"])
        return self.working.copy(), step

    def _initialize(self) -> Dict:
        nfa = self.source
        powerset = nfa.get_powerset_of_states()
        states = [state_label(subset) for subset in powerset]

        transitions = {s: {symbol: [] for symbol in nfa.alphabet} for s in states}
        start_state = state_label(nfa.get_epsilon_closure_states(nfa.start_state))
        accept_states = {
            state_label(subset)
            for subset in powerset
            if any(s in nfa.accept_states for s in subset)
        }

        if start_state not in states:
            raise ConversionError(
                f"start state {start_state} is not a member of state powerset {states}"
            )

        self.working = Automaton(
            states=states,
            alphabet=list(nfa.alphabet),
            start_state=start_state,
            accept_states=accept_states,
            transitions=transitions,
            is_dfa=True,
            name=f"{getattr(nfa, 'name', 'automaton')}__DFA",
        )
        return {"type": INITIALIZE, "desc": "Initialize the DFA"}

    def _add_next_transition(self, prev_state_index: int, prev_symbol_index: int) -> Dict:
        state = self.working.states[self.state_cursor]
        symbol = self.working.alphabet[self.symbol_cursor]

        if state == EMPTY_STATE:
            to_state = EMPTY_STATE
        else:
            reachable = set()
            for member in state.split(","):
                reachable.update(self.source.get_reachable_states(member, symbol))
            # Ø se absorbe si hay algún destino real
            reachable.discard(EMPTY_STATE)
            to_state = state_label(reachable)

        self.working.transitions[state][symbol] = [to_state]
        self.symbol_cursor += 1

        return {
            "type": ADD_TRANSITION,
            "desc": f"Add a transition from {{{state}}} on input {symbol} to {{{to_state}}}",
            "from_state": state,
            "to_state": to_state,
            "symbol": symbol,
            "prev_state_index": prev_state_index,
            "prev_symbol_index": prev_symbol_index,
        }

    def _delete_next_unreachable_state(self) -> Dict:
        state = self.pending_unreachable.pop(0)
        row = self.working.transitions.get(state)
        step = {
            "type": DELETE_STATE,
            "desc": f"Delete unreachable state {{{state}}}",
            "state": state,
            "transitions": (
                {a: list(dests) for a, dests in row.items()} if row is not None else None
            ),
        }
        self.working.remove_state(state)
        return step

    def _merge_next_redundant_states(self) -> Dict:
        pair = self.pending_redundant.pop(0)
        step = {
            "type": MERGE_STATES,
            "desc": f"Merge redundant states {{{pair[0]}}} and {{{pair[1]}}}",
            "states": list(pair),
        }
        self.working.merge_states(*pair)
        return step

    def step_forward(self) -> Tuple[Optional[Automaton], Optional[Dict]]:
        prev_state_index, prev_symbol_index = self.state_cursor, self.symbol_cursor
        unreachable_pending = self.pending_unreachable is None
        redundant_pending = self.pending_redundant is None

        kind = self.get_next_step_kind()
        if kind == NO_STEP:
            return None, None

        if kind == INITIALIZE:
            step = self._initialize()
        elif kind == ADD_TRANSITION:
            self.state_cursor, self.symbol_cursor = self._cursors()
            step = self._add_next_transition(prev_state_index, prev_symbol_index)
        elif kind == DELETE_STATE:
            step = self._delete_next_unreachable_state()
        else:
            step = self._merge_next_redundant_states()

        computed = tuple(
            queue
            for queue, was_pending in (
                ("unreachable", unreachable_pending),
                ("redundant", redundant_pending),
            )
            if was_pending and getattr(self, f"pending_{queue}") is not None
        )
        return self._record(step, computed)

    def step_backward(self) -> Tuple[Optional[Automaton], Optional[Dict]]:
        if not self.history:
            return None, None

        _, step, computed = self.history.pop()
        kind = step["type"]

        if kind == INITIALIZE:
            self.reset()
            logger.debug("Undo: %s", step["desc"])
            return None, step

        if kind == ADD_TRANSITION:
            self.state_cursor = step["prev_state_index"]
            self.symbol_cursor = step["prev_symbol_index"]
            self.pending_unreachable = None
            self.pending_redundant = None
        elif kind == DELETE_STATE:
            self.pending_unreachable.insert(0, step["state"])
            self.pending_redundant = None
        elif kind == MERGE_STATES:
            self.pending_redundant.insert(0, tuple(step["states"]))

        if "unreachable" in computed:
            self.pending_unreachable = None
        if "redundant" in computed:
            self.pending_redundant = None

        self.working = self.history[-1][0].copy()
        logger.debug("Undo: %s", step["desc"])
        return self.working.copy(), step

    def reset(self) -> None:
        self.working = None
        self.history = []
        self.state_cursor = 0
        self.symbol_cursor = 0
        self.pending_unreachable = None
        self.pending_redundant = None

    def step(self, n: int) -> Optional[Automaton]:
        for _ in range(n):
            self.step_forward()

        return self.working.copy() if self.working is not None else None

    def complete(self) -> List[Tuple[Automaton, Dict]]:
        all_steps = []

        while True:
            dfa, step = self.step_forward()
            if dfa is None or step is None:
                break
            all_steps.append((dfa, step))

        return all_steps
