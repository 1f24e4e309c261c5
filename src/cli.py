"""
CLI for translating flows offline.

Prints the broker subscriptions a flow needs. With --ids, stands in for
the broker: assigns the given subscription ids in order and prints the
rules that become ready.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from src.config import Settings
from src.translator import FlowTranslator, TranslationError, assign_identifier, finalize

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def load_flow(path: Path, flow_id: str | None) -> tuple[list[dict], str]:
    """Read a flow file: either a descriptor list or {"id": ..., "flow": [...]}."""
    data = json.loads(path.read_text())
    if isinstance(data, dict):
        return data.get("flow", []), flow_id or data.get("id") or path.stem
    return data, flow_id or path.stem


def cmd_translate(args) -> int:
    """Translate a flow file."""
    try:
        descriptors, flow_id = load_flow(Path(args.flow_file), args.flow_id)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read flow file {args.flow_file}: {e}")
        return 1

    try:
        result = FlowTranslator(Settings.from_env()).translate(descriptors, flow_id)
    except TranslationError as e:
        logger.error(f"Translation failed: {e}")
        return 1

    output: dict = {
        "flow_id": result.flow_id,
        "subscriptions": [
            {
                "rule": request.draft.name,
                "slot": request.slot.name.lower(),
                "payload": request.subscription.to_payload(),
            }
            for request in result.subscriptions
        ],
    }

    if args.ids:
        ids = [sub_id.strip() for sub_id in args.ids.split(",") if sub_id.strip()]
        if len(ids) < len(result.subscriptions):
            logger.warning(
                f"{len(result.subscriptions)} subscriptions but only {len(ids)} ids, "
                "some rules will not be ready"
            )
        rules = []
        for request, sub_id in zip(result.subscriptions, ids):
            assign_identifier(request.draft, request.slot, sub_id)
            rule = finalize(request.draft)
            if rule is not None:
                rules.append(rule.to_payload())
        output["rules"] = rules

    print(json.dumps(output, indent=args.indent, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Translate flows into subscriptions and rules")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Translate command
    translate_parser = subparsers.add_parser("translate", help="Translate a flow file")
    translate_parser.add_argument("flow_file", help="JSON flow file")
    translate_parser.add_argument("--flow-id", help="Flow ID (default: from file)")
    translate_parser.add_argument(
        "--ids", help="Comma-separated subscription ids to assign, in subscription order"
    )
    translate_parser.add_argument("--indent", type=int, default=2, help="JSON indentation")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "translate": cmd_translate,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
