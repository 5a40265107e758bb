#!/usr/bin/env python3
"""
FlowWave - Main Entry Point
===========================

Command-line interface for the WhatsApp autoresponder.

Usage:
    python main.py --web                       # Start webhook server
    python main.py --simulate "need support"   # Preview the reply to a message
    python main.py --validate flows.json       # Check an automation config
    python main.py --export                    # Print the active automation config
    python main.py --send +15551234567 "Hi"    # Send a WhatsApp message
    python main.py --status                    # Show settings and flow summary
"""

import sys
import argparse
import asyncio
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.config import Settings, load_config, load_automation
from core.exceptions import FlowWaveError, ConfigValidationError
from core.logging import setup_logging, get_logger

logger = get_logger("main")


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="FlowWave - keyword-triggered WhatsApp autoresponder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --web --port 9000              Serve the webhook on port 9000
  python main.py --simulate "pricing please"    Show which flow answers
  python main.py --validate ./automation.json   Report every config problem
        """
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--web",
        action="store_true",
        help="Start the webhook and API server"
    )
    mode_group.add_argument(
        "--simulate",
        type=str,
        metavar="MESSAGE",
        help="Evaluate MESSAGE against the automation config and print the TwiML"
    )
    mode_group.add_argument(
        "--validate",
        type=str,
        metavar="PATH",
        help="Validate an automation config JSON file"
    )
    mode_group.add_argument(
        "--export",
        action="store_true",
        help="Print the active automation config as JSON"
    )
    mode_group.add_argument(
        "--send",
        nargs=2,
        metavar=("NUMBER", "MESSAGE"),
        help="Send a WhatsApp message through Twilio"
    )
    mode_group.add_argument(
        "--status",
        action="store_true",
        help="Show settings and automation summary"
    )

    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="Path to settings YAML file"
    )
    parser.add_argument(
        "--automation",
        type=str,
        metavar="PATH",
        help="Path to automation config JSON (overrides settings)"
    )
    parser.add_argument("--port", type=int, help="Port for the web server")
    parser.add_argument("--host", type=str, help="Host for the web server")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )

    return parser.parse_args(argv)


def print_violations(error: ConfigValidationError) -> None:
    print(f"✗ {len(error.violations)} problem(s) found:")
    for violation in error.violations:
        print(f"  - {violation.path}: {violation.message}")


def run_validate(path: str) -> int:
    """Validate an automation config file and report every violation."""
    from rules.validation import load_automation_config

    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        print(f"✗ Cannot read {path}: {e}")
        return 1

    result = load_automation_config(text)
    if not result.ok:
        print_violations(ConfigValidationError(result.violations))
        return 1

    config = result.config
    print(f"✓ {path} is valid")
    print(f"  Flows: {len(config.flows)} ({len(config.active_flows)} active)")
    return 0


def run_simulate(settings: Settings, message: str) -> int:
    """Preview the reply to a message."""
    from rules.engine import AutomationEngine

    result = AutomationEngine(load_automation(settings)).evaluate(message)

    print(f"\nMessage: {message}")
    print("-" * 50)
    if result.matched:
        print(f"Matched flow: {result.flow.name} ({result.flow.id})")
    else:
        print("No flow matched, using fallback message")
    if result.handoff_number:
        print(f"Handoff to: {result.handoff_number}")
    for warning in result.warnings:
        print(f"⚠ {warning.message}")
    print("\nTwiML:")
    print(result.document)
    return 0


def run_export(settings: Settings) -> int:
    """Print the active automation config."""
    from rules.models import serialize_config

    print(serialize_config(load_automation(settings)))
    return 0


def run_send(settings: Settings, number: str, message: str) -> int:
    """Send a WhatsApp message."""
    from services.transport import TwilioTransport

    transport = TwilioTransport.from_settings(settings.twilio)
    if transport is None:
        print("✗ Twilio credentials not configured")
        print("  Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_WHATSAPP_NUMBER")
        return 1

    print(f"\nSending to {number}...")
    result = asyncio.run(transport.send(number, message))
    print(f"✓ Sent (sid={result.id}, status={result.status})")
    return 0


def run_status(settings: Settings) -> int:
    """Show settings and automation summary."""
    print("\n" + "=" * 50)
    print(f"{settings.app_name} - Status")
    print("=" * 50 + "\n")

    print("Twilio")
    print("-" * 30)
    if settings.twilio.is_configured:
        print(f"  Status: ✓ Configured ({settings.twilio.whatsapp_number})")
    else:
        print("  Status: ✗ Not configured (handoffs and sends disabled)")

    print("\nAutomation")
    print("-" * 30)
    source = settings.automation
    if source.config_json:
        print("  Source: AUTOMATION_CONFIG")
    elif source.config_path:
        print(f"  Source: {source.config_path}")
    else:
        print("  Source: built-in defaults")

    config = load_automation(settings)
    print(f"  Flows: {len(config.flows)} ({len(config.active_flows)} active)")
    for flow in config.flows:
        marker = "✓" if flow.active else "·"
        print(f"    {marker} {flow.name} [{flow.match_type.value}: {flow.match_value}]")

    print("\nWeb")
    print("-" * 30)
    print(f"  Listen: {settings.web.host}:{settings.web.port}")
    print("\n" + "=" * 50 + "\n")
    return 0


def run_web(settings: Settings) -> int:
    """Run the web server."""
    from ui.web.app import run_app

    print(f"\nStarting FlowWave on http://{settings.web.host}:{settings.web.port}")
    print("Twilio webhook URL: /api/webhook")
    print("Press Ctrl+C to stop\n")

    run_app(settings=settings)
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        if args.validate:
            return run_validate(args.validate)

        settings = load_config(args.config)

        # Apply command-line overrides
        if args.automation:
            settings.automation.config_path = args.automation
            settings.automation.config_json = ""
        if args.host:
            settings.web.host = args.host
        if args.port:
            settings.web.port = args.port
        if args.debug:
            settings.web.debug = True
            settings.logging.level = "DEBUG"

        settings.validate()

        setup_logging(
            log_dir=settings.logging.log_dir or None,
            log_level=settings.logging.level,
            json_format=settings.logging.json_format,
        )

        if args.web:
            return run_web(settings)
        if args.simulate is not None:
            return run_simulate(settings, args.simulate)
        if args.export:
            return run_export(settings)
        if args.send:
            return run_send(settings, args.send[0], args.send[1])

        run_status(settings)
        if not args.status:
            print("No mode specified. Use --web, --simulate, --validate or --help")
        return 0

    except ConfigValidationError as e:
        print_violations(e)
        return 1
    except FlowWaveError as e:
        print(f"\nError: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
