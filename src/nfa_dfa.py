"""
nfa_dfa.py
----------
Convierte un AFN (JSON o XML, con o sin ε) a AFD paso a paso: construcción por
subconjuntos, transiciones una a una, eliminación de estados inalcanzables y
fusión de estados redundantes.
Uso:
  nfa-dfa input.json --trace
  nfa-dfa input.xml --steps 5 -o parcial.json
  nfa-dfa input.json --steps-out pasos.json --frames frames/
"""

import argparse
import logging
import os
import sys
from automaton import Automaton
from conversion import ConversionSession, ConversionError
from parsing import parse_json_automaton, parse_xml_automaton, write_automaton, write_steps


logger = logging.getLogger(__name__)


def detect_format_from_ext(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext in (".json", ".jsn"):
        return "json"
    if ext in (".xml",):
        return "xml"
    return "json"


def read_automaton(path: str, fmt: str = None) -> Automaton:
    fmt = fmt or detect_format_from_ext(path)
    if fmt == "json":
        return parse_json_automaton(path)
    elif fmt == "xml":
        return parse_xml_automaton(path)
    else:
        raise ValueError(f"Unsupported format: {fmt}")


def build_arg_parser():
    p = argparse.ArgumentParser(description="Convierte un AFN (JSON/XML) a AFD paso a paso.")
    p.add_argument("input", help="Archivo de entrada (.json o .xml) con un AFN (ε permitido)")
    p.add_argument("-o", "--output", help="Archivo de salida (.json o .xml). Por defecto, junto a la entrada")
    p.add_argument("--in-format", choices=["json", "xml"], help="Forzar formato de entrada (auto por extensión)")
    p.add_argument("--out-format", choices=["json", "xml"], help="Forzar formato de salida (auto por extensión)")
    p.add_argument("--steps", type=int, help="Ejecutar solo N pasos en lugar de completar la conversión")
    p.add_argument("--trace", action="store_true", help="Mostrar la descripción de cada paso")
    p.add_argument("--steps-out", help="Guardar el registro de pasos en JSON")
    p.add_argument("--frames", help="Directorio donde guardar una imagen PNG por paso")
    p.add_argument("--name", help="Nombre del autómata de salida")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Nivel de logging",
    )
    return p


def run_session(session: ConversionSession, steps: int = None):
    if steps is None:
        return session.complete()
    performed = []
    for _ in range(steps):
        dfa, step = session.step_forward()
        if step is None:
            break
        performed.append((dfa, step))
    return performed


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    in_fmt = args.in_format or detect_format_from_ext(args.input)
    try:
        nfa = read_automaton(args.input, in_fmt)
    except (OSError, ValueError) as e:
        logger.error("Could not read %s: %s", args.input, e)
        return 1
    print(f"Original NFA loaded: {nfa.name}")
    print(f"States: {len(nfa.states)}, Alphabet: {nfa.alphabet}")

    session = ConversionSession(nfa)
    try:
        performed = run_session(session, args.steps)
    except ConversionError as e:
        logger.error("Conversion failed: %s", e)
        return 1

    if args.trace:
        for i, (_, step) in enumerate(performed, start=1):
            print(f"{i:4d}. [{step['type']}] {step['desc']}")

    dfa = session.working
    if dfa is None:
        print("\nNo steps performed")
        return 0

    print(f"\nSteps performed: {len(performed)} | Next: {session.get_next_step_kind()}")
    print(f"States: {len(dfa.states)} | Start: {dfa.start_state}")
    print(f"Accepting: {[s for s in dfa.states if s in dfa.accept_states]}")
    if args.name:
        dfa.name = args.name

    out_path = args.output
    if not out_path:
        base, ext = os.path.splitext(args.input)
        chosen_ext = args.out_format or (ext.lstrip(".") if ext else in_fmt) or "json"
        out_path = f"{base}_dfa.{chosen_ext}"
    out_fmt = args.out_format or detect_format_from_ext(out_path)
    try:
        write_automaton(dfa, out_path, out_fmt)
        if args.steps_out:
            write_steps(performed, args.steps_out)
            print(f"Step log: {args.steps_out}")
        if args.frames:
            from visualization import render_steps

            frames = render_steps(performed, args.frames)
            print(f"Frames: {len(frames)} in {args.frames}")
    except (OSError, ValueError) as e:
        logger.error("Could not write output: %s", e)
        return 1
    print(f"\nInput: {args.input} ({in_fmt})  ->  Output: {out_path} ({out_fmt})")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nProgram interrupted by user")
        sys.exit(0)
