"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..catalog import CatalogClient, ModelCatalog
from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..errors import InputTooShort, PersistenceError, ScanInProgress
from ..history import HistoryManager
from ..local_store import LocalStore
from ..orchestrator import ScanOrchestrator, count_words, display_percentage, verdict
from ..preferences import Preferences, Theme
from ..scorer import RemoteScorer

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="pym-write",
        description="Score text for AI-generated probability and keep a local scan history",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init-config command
    subparsers.add_parser("init-config", help="Write a default config file")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Scan text and add it to history")
    scan_parser.add_argument(
        "text",
        nargs="?",
        help="Text to scan (reads --file or stdin when omitted)",
    )
    scan_parser.add_argument(
        "-f",
        "--file",
        type=Path,
        help="Read text to scan from a file",
    )
    scan_parser.add_argument(
        "--label",
        type=str,
        help="Title for the scan (prompted for when omitted on a terminal)",
    )
    scan_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the outcome as JSON",
    )

    # history command
    history_parser = subparsers.add_parser("history", help="Show or edit scan history")
    history_sub = history_parser.add_subparsers(dest="history_command", help="History action")
    history_sub.add_parser("list", help="List recent scans (newest first)")

    show_parser = history_sub.add_parser("show", help="Show a stored scan")
    show_parser.add_argument("id", type=int, help="Scan id")

    rename_parser = history_sub.add_parser("rename", help="Rename a stored scan")
    rename_parser.add_argument("id", type=int, help="Scan id")
    rename_parser.add_argument("label", type=str, help="New title")

    delete_parser = history_sub.add_parser("delete", help="Delete a stored scan")
    delete_parser.add_argument("id", type=int, help="Scan id")
    delete_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    clear_parser = history_sub.add_parser("clear", help="Delete all stored scans")
    clear_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # settings command
    settings_parser = subparsers.add_parser("settings", help="Show or change preferences")
    settings_parser.add_argument(
        "--theme",
        choices=[t.value for t in Theme],
        help="Display theme",
    )
    settings_parser.add_argument(
        "--model",
        type=str,
        help="Scorer model identifier",
    )
    key_group = settings_parser.add_mutually_exclusive_group()
    key_group.add_argument(
        "--api-key",
        type=str,
        help="Scorer API key (stored locally)",
    )
    key_group.add_argument(
        "--clear-key",
        action="store_true",
        help="Remove the stored API key (scans use mock data)",
    )

    # models command
    models_parser = subparsers.add_parser("models", help="List selectable scorer models")
    models_parser.add_argument(
        "--free-only",
        action="store_true",
        help="Only list free models",
    )

    return parser


def _confirm(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _open_history(config: Config, store: LocalStore) -> HistoryManager:
    return HistoryManager(store, capacity=config.history.capacity)


def _read_scan_text(text: str | None, file: Path | None) -> str:
    if text is not None:
        return text
    if file is not None:
        return file.read_text(encoding="utf-8")
    return sys.stdin.read()


def cmd_init_config(config_path: Path) -> int:
    """Write a default config file."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def cmd_scan(
    config: Config,
    text: str | None,
    file: Path | None,
    label: str | None,
    as_json: bool,
) -> int:
    """Scan text and add it to history."""
    try:
        scan_text = _read_scan_text(text, file)
    except (OSError, UnicodeDecodeError) as e:
        print(f"❌ Could not read {file or 'stdin'}: {e}")
        return 1

    store = LocalStore(config.store_path)
    preferences = Preferences(store, default_model=config.scorer.default_model)
    history = _open_history(config, store)

    interactive = label is None and (text is not None or file is not None) and sys.stdin.isatty()

    def ask_label(suggestion: str) -> str | None:
        try:
            return input(f"Give this scan a title (optional) [{suggestion}]: ")
        except EOFError:
            return None

    with RemoteScorer(config.scorer) as scorer:
        orchestrator = ScanOrchestrator(
            preferences,
            scorer,
            history,
            min_text_length=config.history.min_text_length,
            label_provider=ask_label if interactive else None,
            notify=None if as_json else (lambda msg: print(f"ℹ {msg}")),
        )

        if not as_json:
            print(f"🔍 Analyzing ({count_words(scan_text)} words)...")

        try:
            outcome = orchestrator.run_scan(scan_text, label=label)
        except InputTooShort as e:
            print(f"❌ {e}")
            return 1
        except ScanInProgress as e:
            print(f"❌ {e}")
            return 1

    if as_json:
        print(json.dumps(outcome.to_dict(), indent=2))
        return 0

    print(f"\n  AI probability: {outcome.percentage}%")
    print(f"  Verdict:        {outcome.verdict}")
    print(f"  Saved as [{outcome.record.id}] {outcome.record.label}")
    return 0


def cmd_history(config: Config, args: argparse.Namespace) -> int:
    """Show or edit scan history."""
    store = LocalStore(config.store_path)
    history = _open_history(config, store)
    action = args.history_command or "list"

    if action == "list":
        if not len(history):
            print("No scans yet")
            return 0
        for record in history.records:
            print(
                f"  [{record.id}] {record.label}  {display_percentage(record.score)}%"
                f"  ({record.created_at})"
            )
        return 0

    if action == "show":
        record = history.find(args.id)
        if record is None:
            print(f"❌ No scan with id {args.id}")
            return 1
        print(f"📄 [{record.id}] {record.label} ({record.created_at})")
        print(f"  AI probability: {display_percentage(record.score)}%")
        print(f"  Verdict:        {verdict(record.score)}")
        print(f"  Words:          {count_words(record.text)}")
        print()
        print(record.text)
        return 0

    if action == "rename":
        renamed = history.rename(args.id, args.label)
        if renamed is None:
            print("⏭ Nothing renamed (unknown id or empty title)")
            return 0
        print(f"✓ Scan Renamed: {renamed.label}")
        return 0

    if action == "delete":
        if not args.yes and not _confirm("Delete this scan?"):
            return 0
        history.delete(args.id)
        print("✓ Scan Deleted")
        return 0

    if action == "clear":
        if not args.yes and not _confirm("Clear all scan history?"):
            return 0
        history.clear()
        print("✓ History Cleared")
        return 0

    print(f"Unknown history action: {action}")
    return 1


def cmd_settings(config: Config, args: argparse.Namespace) -> int:
    """Show or change preferences."""
    store = LocalStore(config.store_path)
    preferences = Preferences(store, default_model=config.scorer.default_model)

    if args.model:
        preferences.select_model(args.model)
        print("✓ Model preference saved")

    if args.api_key is not None or args.clear_key:
        message = preferences.save_settings(args.theme, "" if args.clear_key else args.api_key)
        print(f"✓ {message}")
    elif args.theme:
        preferences.set_theme(args.theme)
        print("✓ Theme Updated")

    print(f"  Theme: {preferences.theme.value}")
    print(f"  Model: {preferences.model}")
    print(f"  {preferences.credential_status()}")
    return 0


def cmd_models(config: Config, free_only: bool) -> int:
    """List selectable scorer models."""
    store = LocalStore(config.store_path)
    preferences = Preferences(store, default_model=config.scorer.default_model)
    client = CatalogClient(
        base_url=config.scorer.api_url,
        referer=config.catalog.referer,
        app_title=config.catalog.app_title,
        timeout=config.catalog.timeout_seconds,
        max_retries=config.catalog.max_retries,
    )
    catalog = ModelCatalog(client)
    try:
        catalog.load()
    finally:
        client.close()

    if catalog.used_fallback:
        print("⚠ Failed to load models. Using default list.")

    selected = catalog.resolve_selection(preferences.model, config.scorer.default_model)
    groups = [("🆓 Free Models", catalog.free_models)]
    if not free_only:
        groups.append(("💰 Paid Models", catalog.paid_models))

    for title, models in groups:
        if not models:
            continue
        print(title)
        for model in models:
            marker = "*" if model.id == selected else " "
            print(f" {marker} {model.id:<45} {model.option_label}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_cli()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "init-config":
        return cmd_init_config(args.config)

    config = load_config(args.config)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error("Config: %s", error)
        raise ConfigValidationError("; ".join(errors))

    try:
        if args.command == "scan":
            return cmd_scan(config, args.text, args.file, args.label, args.json)
        elif args.command == "history":
            return cmd_history(config, args)
        elif args.command == "settings":
            return cmd_settings(config, args)
        elif args.command == "models":
            return cmd_models(config, args.free_only)
        else:
            parser.print_help()
            return 1
    except PersistenceError as e:
        print(f"❌ Local store error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
