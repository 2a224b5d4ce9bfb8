import pytest
from automaton import Automaton


@pytest.fixture()
def sipser_nfa() -> Automaton:
    '''
        Three-state NFA with an ε edge 1 -> 3, start 1, accepting 1.
    '''
    return Automaton(
        states=["1", "2", "3"],
        alphabet=["a", "b"],
        start_state="1",
        accept_states={"1"},
        transitions={
            "1": {"b": ["2"], "ε": ["3"]},
            "2": {"a": ["2", "3"], "b": ["3"]},
            "3": {"a": ["1"]},
        },
        name="sipser",
    )


@pytest.fixture()
def cycle_nfa() -> Automaton:
    '''
        1 <-a-> 2, both accepting. The DFA ends with a mergeable pair.
    '''
    return Automaton(
        states=["1", "2"],
        alphabet=["a"],
        start_state="1",
        accept_states={"1", "2"},
        transitions={
            "1": {"a": ["2"]},
            "2": {"a": ["1"]},
        },
        name="cycle",
    )


@pytest.fixture()
def detached_cycle_nfa() -> Automaton:
    '''
        Start 3 loops on itself; 1 <-a-> 2 is never entered. The DFA
        keeps an unreachable 2-cycle and needs three merges.
    '''
    return Automaton(
        states=["1", "2", "3"],
        alphabet=["a"],
        start_state="3",
        accept_states={"1", "2"},
        transitions={
            "1": {"a": ["2"]},
            "2": {"a": ["1"]},
            "3": {"a": ["3"]},
        },
        name="detached",
    )
