from itertools import combinations
from typing import Dict, Iterable, List, Optional, Set


EPSILON_SYMBOLS = {"", "ε", "eps", "epsilon"}

# Estado sumidero del AFD (subconjunto vacío)
EMPTY_STATE = "Ø"


def state_label(members: Iterable[str]) -> str:
    members = sorted(set(members))
    if not members:
        return EMPTY_STATE
    return ",".join(members)


class Automaton:
    def __init__(
        self,
        states: List[str],
        alphabet: List[str],
        start_state: str,
        accept_states: Set[str],
        transitions: Dict[str, Dict[str, List[str]]],
        is_dfa: bool = False,
        name: str = "automaton",
    ):
        self.states = list(dict.fromkeys(states))
        self.alphabet = [
            sym for sym in dict.fromkeys(alphabet) if sym not in EPSILON_SYMBOLS
        ]
        self.start_state = start_state
        self.accept_states = set(accept_states)
        self.transitions = transitions
        self.is_dfa = is_dfa
        self.name = name

    def copy(self) -> "Automaton":
        return Automaton(
            states=list(self.states),
            alphabet=list(self.alphabet),
            start_state=self.start_state,
            accept_states=set(self.accept_states),
            transitions={
                s: {a: list(dests) for a, dests in row.items()}
                for s, row in self.transitions.items()
            },
            is_dfa=self.is_dfa,
            name=self.name,
        )

    def get_transition(self, state: str, symbol: str) -> Optional[str]:
        dests = self.transitions.get(state, {}).get(symbol) or []
        return dests[0] if dests else None

    def is_complete(self) -> bool:
        """True when every (state, symbol) pair has exactly one destination."""
        return all(
            len(self.transitions.get(s, {}).get(a) or []) == 1
            for s in self.states
            for a in self.alphabet
        )

    def remove_state(self, state: str) -> None:
        # Las transiciones entrantes no se reescriben: solo se eliminan
        # estados sin aristas entrantes.
        self.states = [s for s in self.states if s != state]
        self.accept_states.discard(state)
        self.transitions.pop(state, None)

    def merge_states(self, keep: str, drop: str) -> None:
        if keep == drop:
            return

        for row in self.transitions.values():
            for symbol, dests in row.items():
                row[symbol] = list(
                    dict.fromkeys(keep if d == drop else d for d in dests)
                )

        if drop in self.accept_states:
            self.accept_states.add(keep)
        if self.start_state == drop:
            self.start_state = keep

        self.remove_state(drop)

    def get_powerset_of_states(self) -> List[List[str]]:
        members = sorted(s for s in self.states if s != EMPTY_STATE)
        return [
            list(subset)
            for size in range(len(members) + 1)
            for subset in combinations(members, size)
        ]

    def get_epsilon_closure_states(self, state: str) -> List[str]:
        closure = {state}
        stack = [state]

        while stack:
            current = stack.pop()
            for eps in EPSILON_SYMBOLS:
                for nxt in self.transitions.get(current, {}).get(eps, []):
                    if nxt != EMPTY_STATE and nxt not in closure:
                        closure.add(nxt)
                        stack.append(nxt)

        return sorted(closure)

    def get_reachable_states(self, state: str, symbol: str) -> List[str]:
        reachable = set()

        for dest in self.transitions.get(state, {}).get(symbol, []):
            if dest == EMPTY_STATE:
                continue
            reachable.update(self.get_epsilon_closure_states(dest))

        return sorted(reachable) or [EMPTY_STATE]

    def get_stats(self) -> Dict:
        total_transitions = sum(
            len(dests) for row in self.transitions.values() for dests in row.values()
        )
        epsilon_transitions = sum(
            len(dests)
            for row in self.transitions.values()
            for symbol, dests in row.items()
            if symbol in EPSILON_SYMBOLS
        )

        return {
            "states": len(self.states),
            "alphabet_size": len(self.alphabet),
            "accept_states": len(self.accept_states),
            "total_transitions": total_transitions,
            "epsilon_transitions": epsilon_transitions,
            "is_dfa": self.is_dfa,
        }

    def validate_string(self, input_str: str) -> bool:
        if self.is_dfa:
            current_state = self.start_state

            for symbol in input_str:
                if symbol not in self.alphabet:
                    return False
                current_state = self.get_transition(current_state, symbol)
                if current_state is None:
                    return False

            return current_state in self.accept_states

        # AFN con épsilon: simulación por conjuntos con cierre épsilon
        current_states = set(self.get_epsilon_closure_states(self.start_state))

        for symbol in input_str:
            next_states = set()
            for state in current_states:
                next_states.update(self.get_reachable_states(state, symbol))
            next_states.discard(EMPTY_STATE)
            current_states = next_states

        return any(state in self.accept_states for state in current_states)
