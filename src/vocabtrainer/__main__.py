"""Console entry point for the trainer."""
import asyncio
import logging

from vocabtrainer.app import VocabularyTrainer
from vocabtrainer.config import ensure_directories
from vocabtrainer.logging_config import setup_logging
from vocabtrainer.models.word_models import DetailResult
from vocabtrainer.services.session_service import LearnSession, ReviewSession, SessionStateError

logger = logging.getLogger(__name__)

HELP = (
    "Commands: learn, review, practice <word id>, explore <word>, words, reset <word id>, reset-all, "
    "stats, lang <en|zh>, model <id>, quit"
)


async def ask(prompt: str) -> str:
    """Read a line without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return (await loop.run_in_executor(None, input, prompt)).strip()


def show_detail(title: str, detail: DetailResult) -> None:
    print(f"\n== {title} ==")
    if detail.is_error:
        print(f"[{detail.kind.value}] {detail.message}")
        return
    print(f"Definition: {detail.definition}")
    print(f"Example:    {detail.example_sentence}")
    if detail.synonyms:
        print(f"Synonyms:   {', '.join(detail.synonyms)}")
    if detail.synonym_nuances:
        print(f"Nuances:    {detail.synonym_nuances}")
    if detail.mnemonic:
        print(f"Mnemonic:   {detail.mnemonic}")


def show_words(trainer: VocabularyTrainer) -> None:
    for word, status in trainer.word_statuses():
        print(f"{word.id:<16} {word.text:<20} {status.value}")


async def run_learn(session: LearnSession) -> None:
    await session.start()
    while not session.is_finished:
        card = session.current
        position, total = session.progress
        show_detail(f"{card.word.text} ({position}/{total})", card.detail)
        if (await ask("[enter] next, [q] end: ")).lower() == "q":
            session.end()
            break
        session.next_word()


async def run_review(session: ReviewSession) -> None:
    card = await session.start()
    if card is None:
        print("No words to review right now!")
        return
    while card is not None:
        position, total = session.progress
        print(f"\n== {card.word.text} ({position}/{total}) ==")
        if session.can_evaluate:
            answer = await ask("Explain the word (or 'y'/'n' to self-report, 'q' to end): ")
        else:
            answer = await ask("Did you remember it? [y/n, q to end]: ")
        if answer.lower() == "q":
            session.end()
            return
        try:
            if answer.lower() in ("y", "n"):
                feedback = session.record_self_report(answer.lower() == "y")
            elif answer:
                feedback = await session.submit_explanation(answer)
            else:
                continue
        except SessionStateError as e:
            print(e)
            continue
        print("Correct!" if feedback.is_correct else "Needs improvement")
        print(feedback.feedback)
        show_detail(card.word.text, card.detail)
        await ask("[enter] continue: ")
        card = await session.acknowledge()


async def main() -> None:
    """Run the console trainer."""
    trainer = VocabularyTrainer()
    trainer.start()
    try:
        print(HELP)
        while True:
            stats = trainer.progress_stats()
            print(
                f"\nTo learn: {len(trainer.store.words_to_learn())}  "
                f"To review: {len(trainer.store.words_to_review())}  "
                f"Learned: {stats.learned_count}/{stats.total_words}  Mastered: {stats.mastered_count}"
            )
            command, _, argument = (await ask("> ")).partition(" ")
            if command in ("quit", "exit", "q"):
                break
            elif command == "learn":
                await run_learn(trainer.learn_session())
            elif command == "review":
                await run_review(trainer.review_session())
            elif command == "practice" and argument:
                await run_review(trainer.practice_session(argument))
            elif command == "explore" and argument:
                show_detail(argument, await trainer.explore_word(argument))
            elif command == "words":
                show_words(trainer)
            elif command == "reset" and argument:
                try:
                    trainer.reset_word_progress(argument)
                    print(f"Progress for {argument} reset")
                except ValueError as e:
                    print(e)
            elif command == "reset-all":
                if (await ask("Reset all progress? [y/N]: ")).lower() == "y":
                    trainer.reset_all_progress()
                    print("All progress reset")
            elif command == "stats":
                print(stats)
            elif command in ("lang", "model") and argument:
                try:
                    if command == "lang":
                        trainer.set_language(argument)
                    else:
                        trainer.set_model(argument)
                except ValueError as e:
                    print(e)
            else:
                print(HELP)
    finally:
        logger.info("Cleaning up...")
        trainer.stop()


def run() -> None:
    """Console script entry point."""
    ensure_directories()
    setup_logging("Starting vocabtrainer ...")

    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        logger.info("Received keyboard interrupt, shutting down...")


if __name__ == "__main__":
    run()
