"""CLI entry point for the Clamp assistant.

A terminal chat for development.  Like the web app, it keeps the history
on the client side and resends all of it every turn.  For production, use
the FastAPI server (clamp/server.py).

Usage:
    python -m clamp.main                         # chat mode, empty store
    python -m clamp.main --mode search           # one-line search answers
    python -m clamp.main --seed demo.json        # seed the in-memory store
    python -m clamp.main --debug                 # show loop and API logs

The seed file maps collection names to lists of documents, e.g.
``{"clients": [{"id": "c1", "name": "Jo Smith"}], "jobs": [...]}``.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from clamp.agent import ClampAgent, build_agent
from clamp.assembler import assemble
from clamp.config import load_settings
from clamp.policy import ChatMode, ConversationLimitError, session_config, validate_history
from clamp.services.store import InMemoryTenantStore

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
        force=True,
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("clamp").setLevel(logging.DEBUG if debug else logging.INFO)


def load_seed(store: InMemoryTenantStore, tenant_id: str, path: Path) -> int:
    """Load ``{collection: [doc, ...]}`` from ``path`` into ``store``."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object of collections")
    count = 0
    for collection, docs in data.items():
        if not isinstance(docs, list):
            raise ValueError(f"{path}: collection {collection!r} must be a list")
        count += len(store.seed(tenant_id, collection, docs))
    return count


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Clamp assistant CLI")
    parser.add_argument("--debug", action="store_true", help="Show all log messages")
    parser.add_argument("--tenant", default="dev-tenant", help="Tenant id to act as")
    parser.add_argument(
        "--mode", choices=[m.value for m in ChatMode], default=ChatMode.CHAT.value,
    )
    parser.add_argument("--seed", type=Path, help="JSON file to seed the in-memory store")
    args = parser.parse_args()

    _configure_logging(debug=args.debug)
    settings = load_settings()

    store = InMemoryTenantStore()
    if args.seed:
        loaded = load_seed(store, args.tenant, args.seed)
        logger.info("Seeded %d documents for tenant %s", loaded, args.tenant)

    agent: ClampAgent | None = build_agent(settings, store)
    if agent is None:
        print("Clamp is being set up. Set ANTHROPIC_API_KEY and try again.")
        return

    config = session_config(args.mode, settings)
    history: list[dict] = []

    print("\n" + "=" * 60)
    print(f"  Clamp - CLI ({config.mode.value} mode, tenant {args.tenant})")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new conversation.")
    print("=" * 60 + "\n")

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break

        if user_input.lower() == "new":
            history = []
            print("\n>> New conversation started.\n")
            continue

        turn = history + [{"role": "user", "content": user_input}]
        try:
            validate_history(turn, config)
        except ConversationLimitError:
            print("\nClamp: Conversation is at the limit. Type 'new' to start again.\n")
            continue

        try:
            run = agent.run(turn, config.mode, args.tenant)
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except Exception:
            logger.exception("Error processing message")
            print("\nClamp: Clamp ran into a problem. Try again.\n")
            continue

        assembled = assemble(run.final_message, run.tool_results, config.mode)
        history = turn + [{"role": "assistant", "content": assembled.reply}]

        print(f"\nClamp: {assembled.reply}")
        for card in assembled.action_cards:
            target = f" ({card.entity_id})" if card.entity_id else ""
            print(f"  [{card.label}] -> {card.view}{target}")
        for hit in assembled.search_results or []:
            print(f"  - {hit.type}: {hit.title}  {hit.subtitle}")
        print()


if __name__ == "__main__":
    main()
