#!/usr/bin/env python3
"""VibeForge - conversational front-end app generator.

Usage:
    python main.py turn --prompt "add a contact form"                    # stream one turn
    python main.py turn --prompt "..." --project app.json --write        # apply result to a project file
    python main.py plan --prompt "add a dark mode toggle"                # planner only (dry run)
    python main.py show --project app.json                               # list files in preview order
"""

import argparse
import json
import logging
import os
import sys

from config.settings import ConfigError, get_settings
from core.context import ProjectContext
from core.conversation import fold_events, phase_label
from core.events import DoneEvent
from core.orchestrator import Orchestrator
from core.state import TurnOutcome
from core.vfs import Patch, VirtualFileStore
from utils.llm import AgentError

CLI_USER = "cli"


def _load_project(path):
    """Project files hold {"files": <serialized store>, "context": <serialized context>}."""
    settings = get_settings()
    if not path or not os.path.exists(path):
        return VirtualFileStore(entry_path=settings.entry_path), ProjectContext()
    with open(path) as f:
        raw = f.read()
    try:
        data = json.loads(raw)
    except ValueError:
        data = None
    if not isinstance(data, dict) or "files" not in data:
        # a bare serialized store
        return VirtualFileStore.deserialize(raw, settings.entry_path), ProjectContext()
    store = VirtualFileStore.deserialize(data.get("files"), settings.entry_path)
    return store, ProjectContext.deserialize(data.get("context"))


def _save_project(path, store, context):
    with open(path, "w") as f:
        json.dump({"files": store.serialize(), "context": context.serialize()}, f, indent=2)


def _format_findings(findings):
    lines = []
    for item in findings:
        lines.append(f"  [{item['type']}] {item['file']} — {item['message']}")
    return "\n".join(lines)


def _build_request(prompt, store, context):
    settings = get_settings()
    project_context = (
        context.to_prompt_string()
        + "\n\n"
        + store.to_project_context(settings.generator_context_chars)
    )
    return {
        "messages": [{"role": "user", "content": prompt}],
        "projectContext": project_context,
        "fileTree": store.file_tree(),
    }


def cmd_turn(args):
    """Run one turn and print its events."""
    store, context = _load_project(args.project)
    orchestrator = Orchestrator()
    state = orchestrator.create_state(_build_request(args.prompt, store, context), CLI_USER)
    decoded = []
    for event in orchestrator.run_turn(state.request, CLI_USER, state=state):
        if isinstance(event, DoneEvent):
            break
        data = event.to_dict()
        decoded.append(data)
        kind = data["type"]
        if kind == "phase":
            print(f"[{data['phase']}] {data['message']}")
        elif kind == "plan" and args.verbose:
            for step in data["plan"]["steps"]:
                print(f"  {step['id']}. {step['action']} {step['target']}: {step['description']}")
        elif kind == "file_generated":
            print(f"  wrote {data['path']} ({data['linesCount']} lines)")
        elif kind == "validation":
            if data.get("skipped"):
                print("  validation skipped")
            elif args.verbose and (data["errors"] or data["warnings"]):
                print(_format_findings(data["errors"] + data["warnings"]))
        elif kind == "result":
            if data["conversational"]:
                print(f"\n{data.get('reply', '')}")
            else:
                print(f"\n{data.get('intent', '')}: {len(data['files'])} file(s), "
                      f"{len(data['deletedFiles'])} deletion(s)")
                if data.get("warnings"):
                    print("Warnings:")
                    print(_format_findings(data["warnings"]))
        elif kind == "cancelled":
            print("Cancelled.")

    final = fold_events(decoded)
    if args.verbose:
        print(f"\nClient phase: {final.phase.value} {phase_label(final.phase)}")

    changed = state.files or (state.plan and state.plan.deleted_paths())
    if state.outcome == TurnOutcome.COMPLETED and changed and args.write:
        if not args.project:
            print("--write needs --project", file=sys.stderr)
            return 2
        store.apply_patch(Patch.from_result(state.files, state.plan.deleted_paths()))
        context.update_from_result(state.plan.intent, state.plan.dependencies_needed)
        _save_project(args.project, store, context)
        print(f"Project saved to {args.project}")

    return 1 if state.outcome == TurnOutcome.ERROR else 0


def cmd_plan(args):
    """Run the planner only."""
    store, context = _load_project(args.project)
    orchestrator = Orchestrator()
    try:
        plan = orchestrator.plan(_build_request(args.prompt, store, context))
    except AgentError as e:
        print(f"Planner failed: {e}", file=sys.stderr)
        return 1
    print(f"Intent: {plan.intent}")
    print(f"Risk:   {plan.risk_level}")
    if plan.conversational:
        print(f"\nReply: {plan.reply}")
        return 0
    if plan.clarification_needed:
        print(f"\nClarification: {plan.clarification_question}")
    print("\nSteps:")
    for step in plan.steps:
        print(f"  {step.id}. [{step.priority}] {step.action} {step.file_path}: {step.description}")
    return 0


def cmd_show(args):
    store, _ = _load_project(args.project)
    for path in store.list_paths():
        print(f"  {path} ({len(store.read(path).splitlines())} lines)")
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="vibeforge",
        description="Conversational front-end app generator",
    )
    parser.add_argument("--log-level", default="WARNING",
                        help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    turn_parser = subparsers.add_parser("turn", help="Run one conversation turn")
    turn_parser.add_argument("--prompt", required=True, help="Natural language request")
    turn_parser.add_argument("--project", help="Project file (JSON) to read and update")
    turn_parser.add_argument("--write", action="store_true",
                             help="Apply the generated files to the project file")
    turn_parser.add_argument("--verbose", action="store_true",
                             help="Show plan steps and validation findings")

    plan_parser = subparsers.add_parser("plan", help="Run the planner only (dry run)")
    plan_parser.add_argument("--prompt", required=True, help="Natural language request")
    plan_parser.add_argument("--project", help="Project file (JSON)")

    show_parser = subparsers.add_parser("show", help="List project files in preview order")
    show_parser.add_argument("--project", required=True, help="Project file (JSON)")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    commands = {"turn": cmd_turn, "plan": cmd_plan, "show": cmd_show}
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)
    try:
        sys.exit(commands[args.command](args))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
