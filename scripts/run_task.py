#!/usr/bin/env python3
"""
Run Task Script
===============

Run one goal on the phone from the command line and print the report.

Prerequisites:
    1. Set GROQ_API_KEY in .env (get a key at https://console.groq.com/keys)
    2. Set SUPABASE_URL and SUPABASE_ANON_KEY in .env
    3. Have the phone app running and subscribed to the commands table

Usage:
    python scripts/run_task.py --goal "Open Settings and turn on Wi-Fi"

    # Fewer steps, verbose logging
    python scripts/run_task.py --goal "Open YouTube" --max-steps 10 --debug
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from phone_agent.agent.runner import create_automation_loop
from phone_agent.config import get_settings
from phone_agent.errors import CommandChannelError
from phone_agent.utils.logger import get_logger, setup_logging


async def run(goal: str, max_steps: int | None) -> int:
    """Run a goal and print its report. Returns the process exit code."""
    logger = get_logger(__name__)
    settings = get_settings()
    if max_steps is not None:
        settings.automation.automation_max_steps = max_steps

    try:
        loop = create_automation_loop(settings)
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        print("\n💡 Make sure GROQ_API_KEY is set in your .env file.")
        return 2

    print(f"\n📋 Goal: {goal}")
    print("─" * 50)

    try:
        result = await loop.run(goal)
    except CommandChannelError as e:
        print(f"\n❌ Phone automation failed: {e}")
        print("\n💡 Check SUPABASE_URL, SUPABASE_ANON_KEY and SUPABASE_PHONE_TABLE.")
        return 1
    except Exception as e:
        logger.error("Task failed", error=str(e))
        print(f"\n❌ Phone automation failed: {e}")
        return 1
    finally:
        await loop.close()

    print()
    print(result.report)
    print("\n" + "=" * 50)
    print(f"   Status: {result.status.name.lower()}")
    print(f"   Duration: {result.duration_seconds:.1f}s")
    print("=" * 50)

    return 0 if result.completed else 1


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run one goal on the Android phone",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_task.py --goal "Open Settings"
  python run_task.py --goal "Open WhatsApp and message Sam hello" --max-steps 15
        """,
    )
    parser.add_argument("--goal", required=True, help="What to accomplish on the phone")
    parser.add_argument("--max-steps", type=int, help="Override the step ceiling")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    setup_logging("DEBUG" if args.debug else None)

    try:
        exit_code = asyncio.run(run(args.goal, args.max_steps))
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted.")
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
