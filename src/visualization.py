import os
from typing import Dict, List, Optional, Tuple

import networkx as nx
from matplotlib.figure import Figure
from automaton import Automaton


Layout = Dict[str, Tuple[float, float]]

STEP_COLOR = "gold"
STEP_EDGE_COLOR = "red"


def state_layout(states: List[str]) -> Layout:
    """Fixed positions on a circle so a state does not move between frames."""
    return nx.circular_layout(states)


def _edge_labels(automaton: Automaton) -> Dict[Tuple[str, str], str]:
    labels: Dict[Tuple[str, str], List[str]] = {}
    for s in automaton.states:
        for symbol, dests in automaton.transitions.get(s, {}).items():
            for d in dests:
                if d in automaton.states:
                    labels.setdefault((s, d), []).append(symbol)
    return {edge: ",".join(symbols) for edge, symbols in labels.items()}


class AutomatonVisualizer:
    def __init__(self, automaton: Automaton, layout: Optional[Layout] = None):
        self.automaton = automaton
        self.layout = layout or state_layout(automaton.states)

    def _touched(self, step: Optional[Dict]) -> Tuple[set, set]:
        if not step:
            return set(), set()
        kind = step.get("type")
        if kind == "add_transition":
            return {step["from_state"]}, {(step["from_state"], step["to_state"])}
        if kind == "delete_state":
            return {step["state"]}, set()
        if kind == "merge_states":
            return set(step["states"]), set()
        return set(), set()

    def _node_color(self, state: str, touched: set) -> str:
        if state in touched:
            return STEP_COLOR
        if state == self.automaton.start_state:
            return "lightgreen" if state in self.automaton.accept_states else "lightblue"
        return "lightcoral" if state in self.automaton.accept_states else "lightgray"

    def plot(self, ax, title="Automaton", step: Optional[Dict] = None):
        ax.set_title(title, fontsize=10)
        ax.axis("off")
        if not self.automaton.states:
            ax.text(0.5, 0.5, "Empty Automaton", ha="center", va="center", transform=ax.transAxes)
            return

        labels = _edge_labels(self.automaton)
        G = nx.DiGraph()
        G.add_nodes_from(self.automaton.states)
        G.add_edges_from(labels)
        pos = {s: self.layout[s] for s in G.nodes if s in self.layout}
        missing = [s for s in G.nodes if s not in pos]
        if missing:
            pos.update(state_layout(missing))

        touched_states, touched_edges = self._touched(step)
        nodes = list(G.nodes)
        nx.draw_networkx_nodes(
            G,
            pos,
            nodelist=nodes,
            node_color=[self._node_color(s, touched_states) for s in nodes],
            # Doble borde para estados de aceptación
            linewidths=[2.5 if s in self.automaton.accept_states else 1.0 for s in nodes],
            edgecolors="black",
            node_size=900,
            ax=ax,
        )
        nx.draw_networkx_labels(G, pos, font_size=7, ax=ax)

        edges = list(G.edges)
        nx.draw_networkx_edges(
            G,
            pos,
            edgelist=edges,
            edge_color=[STEP_EDGE_COLOR if e in touched_edges else "gray" for e in edges],
            arrows=True,
            arrowstyle="->",
            node_size=900,
            connectionstyle="arc3,rad=0.1",
            ax=ax,
        )
        nx.draw_networkx_edge_labels(
            G,
            pos,
            edge_labels={e: lbl for e, lbl in labels.items() if e[0] != e[1]},
            font_size=6,
            ax=ax,
        )
        for (s, d), lbl in labels.items():
            if s == d:
                x, y = pos[s]
                ax.text(x, y + 0.12, f"↺ {lbl}", ha="center", fontsize=6)


def render_steps(steps: List[Tuple[Automaton, Dict]], out_dir: str) -> List[str]:
    os.makedirs(out_dir, exist_ok=True)
    layout: Layout = {}
    paths = []
    for i, (dfa, step) in enumerate(steps):
        # Los estados nuevos solo aparecen al inicializar; se reutiliza la posición
        if any(s not in layout for s in dfa.states):
            layout.update(state_layout(dfa.states))
        fig = Figure(figsize=(8, 6))
        AutomatonVisualizer(dfa, layout).plot(fig.add_subplot(), f"{i + 1}. {step['desc']}", step)
        path = os.path.join(out_dir, f"step_{i:03d}.png")
        fig.savefig(path)
        paths.append(path)
    return paths
