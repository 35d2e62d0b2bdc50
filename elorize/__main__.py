"""CLI interface for Elorize.

Usage:
    python -m elorize subjects add "Spanish"       Create a subject
    python -m elorize cards add "Hello" "Hola" -s Spanish -t greetings
    python -m elorize review                       Start a review session
    python -m elorize review --filter wrong        Repeat the cards you missed
    python -m elorize due                          Show how many cards are due
    python -m elorize stats                        Show your statistics
"""

import argparse
import asyncio
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings, utcnow
from backend.database import async_session, engine, init_db
from backend.errors import ValidationError
from backend.library import Library
from backend.models.card import Card
from backend.models.subject import Subject
from backend.repository import FlashcardRepository
from backend.srs.selector import (
    CardSelector,
    ReviewFilter,
    SelectionPolicy,
    count_due,
    filter_cards,
)
from backend.srs.session import ReviewSession
from backend.stats import summarize
from backend.store import StoreState, StudyStore

logger = logging.getLogger(__name__)

MIN_ID_PREFIX = 4


def short_id(value: uuid.UUID) -> str:
    return str(value)[:8]


def resolve_subject(state: StoreState, ref: str) -> Subject | None:
    """Find a subject by exact name (case-insensitive) or id prefix."""
    needle = ref.strip().casefold()
    for subject in state.subjects:
        if subject.name.casefold() == needle:
            return subject
    if len(needle) >= MIN_ID_PREFIX:
        matches = [s for s in state.subjects if str(s.id).startswith(needle)]
        if len(matches) == 1:
            return matches[0]
    return None


def resolve_card(state: StoreState, ref: str) -> Card | None:
    """Find a card by id prefix; ambiguous prefixes match nothing."""
    needle = ref.strip().lower()
    if len(needle) < MIN_ID_PREFIX:
        return None
    matches = [c for c in state.cards if str(c.id).startswith(needle)]
    return matches[0] if len(matches) == 1 else None


def format_due(card: Card) -> str:
    due = card.next_due_date
    if due is None:
        return "new"
    if due <= utcnow():
        return "due"
    return due.strftime("%Y-%m-%d")


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    await init_db()


async def load_library(db: AsyncSession) -> tuple[Library, StudyStore]:
    """Load the store for a session and wrap both in a Library."""
    repo = FlashcardRepository(db)
    store = await StudyStore.from_repository(repo)
    return Library(repo, store), store


# --- Subjects ---


async def cmd_subjects_list(args: argparse.Namespace) -> None:
    async with async_session() as db:
        _, store = await load_library(db)
        state = store.state
        if not state.subjects:
            print("  No subjects yet. Add one with: elorize subjects add NAME")
            return
        for subject in state.subjects:
            count = len(state.cards_for_subject(subject.id))
            print(f"  {short_id(subject.id)}  {subject.name:<30} {count} cards")


async def cmd_subjects_add(args: argparse.Namespace) -> None:
    async with async_session() as db:
        library, _ = await load_library(db)
        try:
            subject = await library.add_subject(args.name)
        except ValidationError:
            print("  Please enter a subject name.")
            return
        if subject is None:
            print("  Failed to save subject.")
            return
        print(f"  Added subject '{subject.name}' ({short_id(subject.id)})")


async def cmd_subjects_rename(args: argparse.Namespace) -> None:
    async with async_session() as db:
        library, store = await load_library(db)
        subject = resolve_subject(store.state, args.subject)
        if subject is None:
            print(f"  No subject matches '{args.subject}'.")
            return
        try:
            renamed = await library.rename_subject(subject.id, args.name)
        except ValidationError:
            print("  Please enter a subject name.")
            return
        if renamed is None:
            print("  Failed to rename subject.")
            return
        print(f"  Renamed to '{renamed.name}'")


async def cmd_subjects_delete(args: argparse.Namespace) -> None:
    async with async_session() as db:
        library, store = await load_library(db)
        subject = resolve_subject(store.state, args.subject)
        if subject is None:
            print(f"  No subject matches '{args.subject}'.")
            return
        card_count = len(store.state.cards_for_subject(subject.id))
        if await library.delete_subject(subject.id):
            print(f"  Deleted subject '{subject.name}' and {card_count} cards")
        else:
            print("  Failed to delete subject.")


# --- Cards ---


async def cmd_cards_list(args: argparse.Namespace) -> None:
    async with async_session() as db:
        library, store = await load_library(db)
        subject_id = None
        if args.subject:
            subject = resolve_subject(store.state, args.subject)
            if subject is None:
                print(f"  No subject matches '{args.subject}'.")
                return
            subject_id = subject.id

        cards = filter_cards(store.state.cards, subject_id, ReviewFilter(args.filter))
        if not cards:
            print("  No cards match.")
            return
        for card in cards:
            tags = f"  [{', '.join(card.tags)}]" if card.tags else ""
            print(
                f"  {short_id(card.id)}  {card.front} -> {card.back}"
                f"  ({card.interval_days}d, {format_due(card)}){tags}"
            )


async def cmd_cards_add(args: argparse.Namespace) -> None:
    async with async_session() as db:
        library, store = await load_library(db)
        subject_id = None
        if args.subject:
            subject = resolve_subject(store.state, args.subject)
            if subject is None:
                print(f"  No subject matches '{args.subject}'.")
                return
            subject_id = subject.id

        try:
            card = await library.add_card(
                args.front, args.back, tags=args.tags, subject_id=subject_id, note=args.note
            )
        except ValidationError:
            print("  Front and Back are required.")
            return
        if card is None:
            print("  Failed to save card.")
            return
        print(f"  Added card {short_id(card.id)}: {card.front} -> {card.back}")


async def cmd_cards_edit(args: argparse.Namespace) -> None:
    async with async_session() as db:
        library, store = await load_library(db)
        card = resolve_card(store.state, args.card)
        if card is None:
            print(f"  No card matches '{args.card}'.")
            return

        fields: dict = {}
        for name in ("front", "back", "note", "tags"):
            value = getattr(args, name)
            if value is not None:
                fields[name] = value
        if args.subject is not None:
            if args.subject == "":
                fields["subject_id"] = None
            else:
                subject = resolve_subject(store.state, args.subject)
                if subject is None:
                    print(f"  No subject matches '{args.subject}'.")
                    return
                fields["subject_id"] = subject.id
        if not fields:
            print("  Nothing to change.")
            return

        try:
            updated = await library.update_card(card.id, **fields)
        except ValidationError:
            print("  Front and Back are required.")
            return
        if updated is None:
            print("  Failed to update card.")
            return
        print(f"  Updated card {short_id(updated.id)}: {updated.front} -> {updated.back}")


async def cmd_cards_delete(args: argparse.Namespace) -> None:
    async with async_session() as db:
        library, store = await load_library(db)
        card = resolve_card(store.state, args.card)
        if card is None:
            print(f"  No card matches '{args.card}'.")
            return
        if await library.delete_card(card.id):
            print(f"  Deleted card {short_id(card.id)}")
        else:
            print("  Failed to delete card.")


# --- Review ---


def print_card(card: Card, state: StoreState, position: str) -> None:
    subject = state.subject_by_id(card.subject_id)
    label = f"  {position}"
    if subject is not None:
        label += f" {subject.name}"
    if card.last_reviewed_at is None:
        label += " (NEW)"
    print(label)
    print(f"\n    {card.front}\n")
    if card.tags:
        print(f"    tags: {', '.join(card.tags)}")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive review session."""
    async with async_session() as db:
        library, store = await load_library(db)
        subject_id = None
        if args.subject:
            subject = resolve_subject(store.state, args.subject)
            if subject is None:
                print(f"  No subject matches '{args.subject}'.")
                return
            subject_id = subject.id

        session = ReviewSession(
            store=store,
            selector=CardSelector(SelectionPolicy(args.policy)),
            subject_id=subject_id,
            outcome=ReviewFilter(args.filter),
        )

        if not session.cards:
            print("\n  No cards to review. Add some with: elorize cards add FRONT BACK")
            return

        rotating = session.policy is SelectionPolicy.ROTATION
        print("\n  Review Session")
        print(f"  {len(session.cards)} cards ({session.outcome.label}, {session.policy.value})")
        keys = "f=flip  y=correct  n=wrong"
        if rotating:
            keys += "  p=previous  s=skip"
        print(f"  Keys: {keys}  q=quit\n")

        quit_requested = False
        while not quit_requested and session.stats.cards_reviewed < args.max_cards:
            now = utcnow()
            if not rotating and count_due(session.cards, now) == 0:
                print("  No more cards due. You're all caught up!")
                break

            card = session.current_card(now)
            if card is None:
                break

            position = f"[{session.cursor + 1}/{len(session.cards)}]" if rotating else "[due]"
            print_card(card, store.state, position)

            while True:
                choice = input("  > ").strip().lower()
                if choice == "q":
                    quit_requested = True
                    break
                if choice == "f":
                    print(f"\n    {card.back}\n")
                    if card.note:
                        print(f"    note: {card.note}")
                    continue
                if rotating and choice == "p":
                    session.retreat()
                    break
                if rotating and choice == "s":
                    session.advance()
                    break
                if choice in ("y", "n"):
                    if choice == "y":
                        result = await session.mark_correct(library.repo, card)
                    else:
                        result = await session.mark_wrong(library.repo, card)

                    if result is None:
                        print("  Could not save this review.")
                    elif choice == "y":
                        print(f"  Correct! Next review in {result.interval_days} days")
                    else:
                        print(f"  Answer: {card.back}")

                    await asyncio.sleep(settings.feedback_delay_seconds)
                    if rotating and any(c.id == card.id for c in session.cards):
                        session.advance()
                    print()
                    break
                print("  Unknown key.")

        s = session.stats
        session.close()

    accuracy = (s.accuracy or 0) * 100
    print("\n  Session Complete!")
    print(f"  Reviewed: {s.cards_reviewed}  Correct: {s.correct}  Accuracy: {accuracy:.0f}%\n")


# --- Reports ---


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many cards are due."""
    async with async_session() as db:
        _, store = await load_library(db)
        cards = store.state.cards
        new = sum(1 for card in cards if card.last_reviewed_at is None)
        due = count_due(cards) - new
    print(f"  {due} cards due, {new} new cards available")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show review statistics."""
    async with async_session() as db:
        summary = await summarize(FlashcardRepository(db))

    accuracy = (
        f"{summary.recent_accuracy * 100:.0f}%" if summary.recent_accuracy is not None else "-"
    )
    print(f"\n  {settings.app_name} Statistics")
    print(f"  {'Subjects:':<20} {summary.total_subjects}")
    print(f"  {'Total cards:':<20} {summary.total_cards}")
    print(f"  {'Due now:':<20} {summary.due_cards}")
    print(f"  {'New (unseen):':<20} {summary.new_cards}")
    print(f"  {'Total reviews:':<20} {summary.total_reviews}")
    print(f"  {'Recent accuracy:':<20} {accuracy}")
    print(f"  {'Streak:':<20} {summary.streak_days} days")

    recent = summary.daily[-args.days :] if args.days > 0 else []
    if recent:
        print("\n  Day          Correct  Wrong")
        for stat in recent:
            print(f"  {stat.date.isoformat()}   {stat.correct:>7}  {stat.wrong:>5}")
    print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elorize",
        description="Flashcards with spaced repetition",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # subjects
    subjects_parser = subparsers.add_parser("subjects", help="Manage subjects")
    subjects_sub = subjects_parser.add_subparsers(dest="action")
    subjects_sub.add_parser("list", help="List subjects")
    add_subject = subjects_sub.add_parser("add", help="Add a subject")
    add_subject.add_argument("name", help="Subject name")
    rename_subject = subjects_sub.add_parser("rename", help="Rename a subject")
    rename_subject.add_argument("subject", help="Subject name or id prefix")
    rename_subject.add_argument("name", help="New name")
    delete_subject = subjects_sub.add_parser("delete", help="Delete a subject and its cards")
    delete_subject.add_argument("subject", help="Subject name or id prefix")

    # cards
    cards_parser = subparsers.add_parser("cards", help="Manage cards")
    cards_sub = cards_parser.add_subparsers(dest="action")
    list_cards = cards_sub.add_parser("list", help="List cards, newest first")
    list_cards.add_argument("-s", "--subject", help="Subject name or id prefix")
    list_cards.add_argument(
        "-f", "--filter", default="all", choices=[f.value for f in ReviewFilter]
    )
    add_card = cards_sub.add_parser("add", help="Add a card")
    add_card.add_argument("front", help="Front text")
    add_card.add_argument("back", help="Back text")
    add_card.add_argument("-s", "--subject", help="Subject name or id prefix")
    add_card.add_argument("-t", "--tags", default="", help="Comma-separated tags")
    add_card.add_argument("-n", "--note", help="Optional note")
    edit_card = cards_sub.add_parser("edit", help="Edit a card")
    edit_card.add_argument("card", help="Card id prefix")
    edit_card.add_argument("--front")
    edit_card.add_argument("--back")
    edit_card.add_argument("--note")
    edit_card.add_argument("--tags", help="Comma-separated tags (replaces existing)")
    edit_card.add_argument("--subject", help="Subject name or id prefix ('' to clear)")
    delete_card = cards_sub.add_parser("delete", help="Delete a card")
    delete_card.add_argument("card", help="Card id prefix")

    # review
    review_parser = subparsers.add_parser("review", help="Start a review session")
    review_parser.add_argument("-s", "--subject", help="Only cards of this subject")
    review_parser.add_argument(
        "-f", "--filter", default="all", choices=[f.value for f in ReviewFilter]
    )
    review_parser.add_argument(
        "-p",
        "--policy",
        default=settings.default_policy,
        choices=[p.value for p in SelectionPolicy],
    )
    review_parser.add_argument("--max-cards", type=int, default=20, help="Max cards per session")

    # due
    subparsers.add_parser("due", help="Show cards due for review")

    # stats
    stats_parser = subparsers.add_parser("stats", help="Show your statistics")
    stats_parser.add_argument("--days", type=int, default=7, help="Days of history to show")

    return parser


COMMANDS = {
    ("subjects", "list"): cmd_subjects_list,
    ("subjects", "add"): cmd_subjects_add,
    ("subjects", "rename"): cmd_subjects_rename,
    ("subjects", "delete"): cmd_subjects_delete,
    ("cards", "list"): cmd_cards_list,
    ("cards", "add"): cmd_cards_add,
    ("cards", "edit"): cmd_cards_edit,
    ("cards", "delete"): cmd_cards_delete,
    ("review", None): cmd_review,
    ("due", None): cmd_due,
    ("stats", None): cmd_stats,
}


async def run(args: argparse.Namespace) -> None:
    await ensure_db()
    try:
        await COMMANDS[(args.command, getattr(args, "action", None))](args)
    finally:
        await engine.dispose()


def main() -> None:
    """Entry point for the Elorize CLI application."""
    parser = build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    action = getattr(args, "action", None)
    if args.command in ("subjects", "cards") and action is None:
        args.action = "list"

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
