import json
import os
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Tuple
from automaton import Automaton, EPSILON_SYMBOLS


# Rutas alternativas aceptadas para cada sección del XML
XML_PATHS = {
    "states": ("states/state", "States/State", "stateSet/state"),
    "alphabet": ("alphabet/symbol", "Alphabet/Symbol", "alphabet/char", "Alphabet/Char"),
    "start": ("start", "Start"),
    "accept": ("accept/state", "Accept/State", "finals/state"),
    "transitions": ("transitions/t", "Transitions/T", "transitions/transition", "Transitions/Transition"),
}


class _Builder:
    """Collects states, symbols and edges in first-seen order."""

    def __init__(self, states: List[str], alphabet: List[str]):
        self.states = list(states)
        self.alphabet = list(alphabet)
        self.transitions: Dict[str, Dict[str, List[str]]] = {}

    def add(self, frm: str, sym: str, to: str) -> None:
        row = self.transitions.setdefault(frm, {}).setdefault(sym, [])
        if to not in row:
            row.append(to)
        self.states.extend((frm, to))
        if sym not in EPSILON_SYMBOLS:
            self.alphabet.append(sym)

    def build(self, start_state: str, accept_states, name: str) -> Automaton:
        is_dfa = all(
            sym not in EPSILON_SYMBOLS and len(dests) == 1
            for row in self.transitions.values()
            for sym, dests in row.items()
        )
        return Automaton(
            self.states + [start_state],
            self.alphabet,
            start_state,
            set(accept_states),
            self.transitions,
            is_dfa,
            name,
        )


def _default_name(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


def parse_json_automaton(path: str) -> Automaton:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
    if data.get("start_state") is None:
        raise ValueError(f"{path}: missing start_state")

    builder = _Builder(
        [str(s) for s in data.get("states", [])],
        [str(a) for a in data.get("alphabet", [])],
    )
    for frm, symbol_map in data.get("transitions", {}).items():
        for sym, dests in symbol_map.items():
            for to in [dests] if isinstance(dests, (str, int)) else dests:
                builder.add(str(frm), str(sym), str(to))

    return builder.build(
        str(data["start_state"]),
        (str(s) for s in data.get("accept_states", [])),
        data.get("name", _default_name(path)),
    )


def _xml_texts(root: ET.Element, section: str) -> List[str]:
    for path in XML_PATHS[section]:
        nodes = root.findall(path)
        if nodes:
            return [n.text.strip() for n in nodes if n.text and n.text.strip()]
    return []


def _xml_field(node: ET.Element, field: str) -> Optional[str]:
    value = node.get(field) or node.findtext(field) or node.findtext(field.capitalize())
    return value.strip() if value is not None else None


def parse_xml_automaton(path: str) -> Automaton:
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ValueError(f"{path}: invalid XML: {e}") from e

    start = _xml_texts(root, "start")
    if not start:
        raise ValueError("XML missing <start> node with start state text")

    builder = _Builder(_xml_texts(root, "states"), _xml_texts(root, "alphabet"))
    for path_ in XML_PATHS["transitions"]:
        edges = root.findall(path_)
        if not edges:
            continue
        for t in edges:
            frm, to = _xml_field(t, "from"), _xml_field(t, "to")
            if frm and to:
                builder.add(frm, _xml_field(t, "symbol") or "", to)
        break

    return builder.build(
        start[0],
        _xml_texts(root, "accept"),
        root.get("name") or _default_name(path),
    )


def _edges(a: Automaton):
    for s in a.states:
        for sym, dests in a.transitions.get(s, {}).items():
            for d in dests:
                yield s, sym, d


def automaton_to_json_dict(a: Automaton) -> dict:
    trans_dict: Dict[str, Dict[str, object]] = {}
    for s, sym, d in _edges(a):
        row = trans_dict.setdefault(s, {})
        if sym not in row:
            row[sym] = d
        elif isinstance(row[sym], list):
            row[sym].append(d)
        else:
            row[sym] = [row[sym], d]
    return {
        "name": a.name,
        "states": list(a.states),
        "alphabet": list(a.alphabet),
        "start_state": a.start_state,
        "accept_states": [s for s in a.states if s in a.accept_states],
        "is_dfa": a.is_dfa,
        "transitions": trans_dict,
    }


def automaton_to_xml_element(a: Automaton) -> ET.Element:
    root = ET.Element("automaton", name=a.name)
    sections = (
        ("states", "state", a.states),
        ("alphabet", "symbol", a.alphabet),
        ("accept", "state", [s for s in a.states if s in a.accept_states]),
    )
    for section, tag, items in sections:
        parent = ET.SubElement(root, section)
        for item in items:
            ET.SubElement(parent, tag).text = item
    ET.SubElement(root, "start").text = a.start_state
    edges = ET.SubElement(root, "transitions")
    for s, sym, d in _edges(a):
        ET.SubElement(edges, "t", {"from": s, "symbol": sym, "to": d})
    return root


def steps_to_json_list(steps: List[Tuple[Automaton, dict]]) -> List[dict]:
    return [
        {"step": dict(step), "automaton": automaton_to_json_dict(dfa)}
        for dfa, step in steps
    ]


def _ensure_parent(path: str) -> None:
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def write_automaton(a: Automaton, path: str, fmt: str = "json") -> None:
    if fmt not in ("json", "xml"):
        raise ValueError(f"Unsupported format: {fmt}")
    _ensure_parent(path)
    if fmt == "xml":
        tree = ET.ElementTree(automaton_to_xml_element(a))
        ET.indent(tree)
        tree.write(path, encoding="utf-8", xml_declaration=True)
    else:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(automaton_to_json_dict(a), f, ensure_ascii=False, indent=2)


def write_steps(steps: List[Tuple[Automaton, dict]], path: str) -> None:
    _ensure_parent(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(steps_to_json_list(steps), f, ensure_ascii=False, indent=2)
