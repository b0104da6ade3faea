"""Simple CLI REPL for the incident assistant.

Usage:
    python -m src.cli
"""

import asyncio
import logging
import sys
import uuid

from src.agent.agent import build_agent
from src.chat import ChatService
from src.incidents.cache import get_incident_cache
from src.router.direct import DirectActionRouter

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)


async def _repl(service: ChatService, session_id: str) -> None:
    while True:
        try:
            message = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not message:
            continue
        if message.lower() in ("quit", "exit", "q"):
            print("Goodbye!")
            break
        if message.lower() == "clear":
            service.clear_session(session_id)
            print("Session cleared.\n")
            continue

        reply = await service.handle(session_id, message)
        print(f"\nAssistant: {reply.message}")
        if reply.incidents:
            for incident in reply.incidents:
                print(f"  [{incident.id}] {incident.title} ({incident.status}, {incident.priority})")
        if reply.tools_used:
            print(f"  tools: {', '.join(reply.tools_used)}")
        if reply.next_actions:
            print(f"  try: {' | '.join(reply.next_actions)}")
        print()


def main() -> None:
    """Run the interactive CLI loop."""
    print("Incident Assistant (type 'clear' to reset, 'quit' or Ctrl+C to exit)")
    print("=" * 50)

    try:
        service = ChatService(DirectActionRouter(get_incident_cache()), build_agent())
    except Exception as e:
        print(f"Failed to build assistant: {e}")
        print("Check your .env file for the LLM settings.")
        sys.exit(1)

    session_id = uuid.uuid4().hex[:8]
    print(f"Session: {session_id}\n")

    asyncio.run(_repl(service, session_id))


if __name__ == "__main__":
    main()
