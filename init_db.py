#!/usr/bin/env python3
"""
Initialize the explanation database.

Creates the cache, failure-log and prompt tables and seeds the built-in
instruction sets.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import settings
from core.constants import DEFAULT_PROMPTS
from data.database import DatabaseManager
from data.repositories import PromptRepository


def init_database(db_manager: DatabaseManager, overwrite_prompts: bool = False) -> list:
    """
    Create tables and seed default prompts.

    Returns:
        Names of prompts written
    """
    db_manager.create_tables()
    with db_manager.session() as session:
        return PromptRepository(session).seed(DEFAULT_PROMPTS, overwrite=overwrite_prompts)


def main():
    parser = argparse.ArgumentParser(
        description='Initialize explanation database'
    )
    parser.add_argument(
        '--database-url',
        type=str,
        default=None,
        help=f'Database URL (default: {settings.database_url})'
    )
    parser.add_argument(
        '--drop-existing',
        action='store_true',
        help='Drop existing tables before creating new ones (WARNING: destroys data!)'
    )
    parser.add_argument(
        '--reset-prompts',
        action='store_true',
        help='Overwrite stored prompts with the built-in defaults'
    )

    args = parser.parse_args()

    db_manager = DatabaseManager(args.database_url or settings.database_url)

    print("=" * 60)
    print("Explanation Database Initialization")
    print("=" * 60)
    print(f"Database URL: {db_manager.database_url}")
    print()

    if args.drop_existing:
        confirm = input("⚠️  Drop existing tables? This will DELETE ALL DATA! (yes/no): ")
        if confirm.lower() == 'yes':
            db_manager.drop_tables()
            print("✓ Dropped existing tables")
        else:
            print("Aborted.")
            return

    written = init_database(db_manager, overwrite_prompts=args.reset_prompts)

    print("✓ Database initialized successfully!")
    print()
    print("Tables created:")
    print("  - golden_explanations")
    print("  - failure_logs")
    print("  - prompts")
    print()
    if written:
        print(f"✓ Seeded prompts: {', '.join(written)}")
    else:
        print("Prompts already present (use --reset-prompts to overwrite)")
    print()
    print("You can now:")
    print("  1. Start the API server: uvicorn serving.workflow_api:app --port 8002")
    print("  2. Process documents: python cli_workflow.py run problems.pdf")
    print()


if __name__ == '__main__':
    main()
