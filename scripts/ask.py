#!/usr/bin/env python3
"""Interactive question loop over the synced issues."""

import sys
from pathlib import Path

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from issue_brain.config import get_settings
from issue_brain.retrieval.query import SearchError, get_rag_engine
from issue_brain.utils.logging import configure_logging


def main() -> None:
    """Answer questions until the user types 'exit'."""
    configure_logging(level="WARNING")
    settings = get_settings()
    engine = get_rag_engine()
    history: list[dict[str, str]] = []

    print(f"Ask about {settings.github_repo} issues (type 'exit' to quit).")
    print("Prefix a question with 'all:' to count across every matching issue.")
    while True:
        try:
            question = input("\nYou: ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if question.lower() in ("exit", "quit"):
            break
        if not question:
            continue

        # "all: ..." answers over every matching issue rather than the closest few.
        analytical = question.lower().startswith("all:")
        if analytical:
            question = question[4:].strip()

        try:
            result = engine.query(question, history, analytical=analytical)
        except SearchError as e:
            print(f"\nError: {e}")
            continue

        print(f"\nAssistant: {result['answer']}")
        for issue in result["issues"]:
            print(f"  - #{issue['number']}: {issue['title']}")

        history.append({"role": "user", "content": question})
        history.append({"role": "assistant", "content": result["answer"]})


if __name__ == "__main__":
    main()
