"""Typer CLI application for taking poker quizzes."""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from poker_quiz import __version__
from poker_quiz.config.settings import LOG_LEVELS, get_settings
from poker_quiz.engine.errors import QuizDefinitionError, UnknownQuestionError
from poker_quiz.engine.loader import load_quiz_file
from poker_quiz.engine.session import QuizSession, SessionPhase
from poker_quiz.export.docx_generator import export_results_to_docx
from poker_quiz.models.quiz import (
    BaseQuestion,
    CalculationQuestion,
    MultipleChoiceQuestion,
    QuizDefinition,
    QuizMode,
    QuizResults,
    ScenarioQuestion,
    TrueFalseQuestion,
)
from poker_quiz.registry import QuizRegistry

app = typer.Typer(
    name="poker-quiz",
    help="Poker skill assessments in the terminal",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)

HINT_COMMAND = "?"
BACK_COMMAND = "<"
QUIT_COMMAND = ":q"

TRUE_WORDS = {"t", "true", "y", "yes"}
FALSE_WORDS = {"f", "false", "n", "no"}


def configure_logging(level: str) -> None:
    """Route log records through rich at the configured level."""
    level_name = level.strip().upper()
    if level_name not in LOG_LEVELS:
        console.print(
            f"[red]Error:[/red] Invalid log level '{escape(level)}'. "
            f"Choose from: {', '.join(LOG_LEVELS)}",
            style="bold",
        )
        raise typer.Exit(code=1)
    logging.basicConfig(
        level=level_name,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_registry(quiz_dir: Optional[str]) -> QuizRegistry:
    """Bundled quizzes plus the configured or given extra directory."""
    try:
        return QuizRegistry.default(quiz_dir or get_settings().quiz_dir)
    except QuizDefinitionError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", style="bold")
        raise typer.Exit(code=1)


def get_quiz_or_exit(registry: QuizRegistry, module_id: str) -> QuizDefinition:
    quiz = registry.get_quiz_by_id(module_id)
    if quiz is None:
        console.print(
            f"[red]Error:[/red] No quiz for module {module_id}. "
            f"Available: {', '.join(registry.available_ids()) or 'none'}",
            style="bold",
        )
        raise typer.Exit(code=1)
    return quiz


@app.command("list")
def list_quizzes(
    quiz_dir: Optional[str] = typer.Option(
        None, "--quiz-dir", help="Extra directory of JSON quiz definitions"
    ),
) -> None:
    """List available quizzes."""
    registry = load_registry(quiz_dir)

    table = Table(title="Available Quizzes", border_style="cyan")
    table.add_column("Module", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Category", style="white")
    table.add_column("Questions", justify="right")
    table.add_column("Pass", justify="right")

    for entry in registry.quiz_list():
        table.add_row(
            entry["id"],
            entry["title"],
            entry["category"] or "-",
            str(entry["question_count"]),
            f"{entry['passing_score']:g}%",
        )

    console.print(table)


@app.command()
def show(
    module_id: str = typer.Argument(..., help="Module id, e.g. 1.1"),
    quiz_dir: Optional[str] = typer.Option(
        None, "--quiz-dir", help="Extra directory of JSON quiz definitions"
    ),
) -> None:
    """Show the intro screen of a quiz."""
    quiz = get_quiz_or_exit(load_registry(quiz_dir), module_id)
    display_intro(quiz)


@app.command()
def validate(
    paths: List[Path] = typer.Argument(..., help="Quiz definition JSON files"),
) -> None:
    """Validate quiz definition files."""
    failures = 0
    for path in paths:
        try:
            quiz = load_quiz_file(path)
        except (QuizDefinitionError, OSError) as e:
            failures += 1
            console.print(f"[red]✗[/red] {path}\n{escape(str(e))}")
            continue
        console.print(
            f"[green]✓[/green] {path}: module {quiz.module_info.id}, "
            f"{len(quiz.sections)} sections, {quiz.total_questions} questions"
        )

    if failures:
        raise typer.Exit(code=1)


@app.command()
def take(
    module_id: str = typer.Argument(..., help="Module id, e.g. 1.1"),
    mode: QuizMode = typer.Option(
        QuizMode.STANDARD,
        "--mode",
        "-m",
        help="standard (untimed, hints), timed, or speed (short timer, no hints)",
        case_sensitive=False,
    ),
    report: bool = typer.Option(
        False,
        "--report/--no-report",
        help="Export a DOCX results report when the quiz ends",
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory for the results report",
    ),
    quiz_dir: Optional[str] = typer.Option(
        None, "--quiz-dir", help="Extra directory of JSON quiz definitions"
    ),
) -> None:
    """
    Take a quiz interactively.

    Example:
        poker-quiz take 1.1 --mode timed --report
    """
    settings = get_settings()
    quiz = get_quiz_or_exit(load_registry(quiz_dir), module_id)
    output_dir = output or settings.default_output_path

    def record_results(results: QuizResults) -> None:
        if not report:
            return
        path = export_results_to_docx(
            quiz,
            results,
            f"quiz_{quiz.module_info.id.replace('.', '_')}",
            answers=dict(session.state.answers),
            output_dir=output_dir,
        )
        console.print(f"\n[green]✓[/green] Report exported to: {path}")

    session = QuizSession(
        quiz,
        on_complete=record_results,
        default_timed_minutes=settings.default_timed_minutes,
        default_speed_minutes=settings.default_speed_minutes,
    )

    display_intro(quiz)
    while True:
        session.start_quiz(mode)
        if not run_questions(session):
            console.print("\n[yellow]Quiz abandoned.[/yellow]")
            raise typer.Exit()

        display_results(quiz, session.results())

        if not Confirm.ask("\nRetake the quiz?", console=console, default=False):
            break
        session.restart()


@app.command()
def info() -> None:
    """Display information about the quiz engine."""
    info_text = f"""
[bold cyan]Poker Quiz[/bold cyan]
Version: {__version__}

[bold]Question types:[/bold]
  • Multiple choice and hand scenarios
  • True / false
  • Calculations accepted within a range
  • Quick-calc short answers

[bold]Modes:[/bold]
  • Standard - untimed, hints on demand
  • Timed - countdown, hints on demand
  • Speed - short countdown, no hints

[bold]Scoring:[/bold] weighted by section, pass at the module's passing score
    """
    console.print(Panel(info_text, title="Poker Quiz Info", border_style="cyan"))


def run_questions(session: QuizSession) -> bool:
    """
    Drive the session until results.

    Returns:
        False if the learner quit before finishing
    """
    while session.phase is SessionPhase.IN_SECTION:
        question = session.current_question
        display_question(session, question)

        raw = Prompt.ask(
            prompt_for(session, question), console=console, default="", show_default=False
        )
        command = raw.strip()

        if command == QUIT_COMMAND:
            return False

        invalid = False
        if command and command not in (HINT_COMMAND, BACK_COMMAND):
            value = parse_input(question, command)
            if value is None:
                invalid = True
            else:
                try:
                    session.answer(question.id, value)
                except UnknownQuestionError as e:
                    logger.error("%s", e)

        # After recording any answer, before acting on any other command
        if session.poll_timer():
            console.print("\n[red bold]Time is up![/red bold]")
            break

        if command == HINT_COMMAND:
            if not session.hints_visible:
                console.print("[yellow]Hints are disabled in speed mode.[/yellow]")
            elif session.toggle_explanation():
                console.print(Panel(session.current_explanation or "No hint available.", title="Hint"))
            continue

        if command == BACK_COMMAND:
            if not session.previous():
                console.print("[yellow]Already at the first question of this section.[/yellow]")
            continue

        if invalid:
            console.print("[red]Invalid answer, try again.[/red]")
            continue

        if not session.can_advance:
            console.print("[yellow]Answer the question to continue.[/yellow]")
            continue

        session.next()

    return True


def parse_input(question: BaseQuestion, text: str):
    """
    Convert typed input into the answer shape the question expects.

    Returns:
        The answer, or None if the input cannot be an answer to this question
    """
    if isinstance(question, MultipleChoiceQuestion):
        letter = text.upper()
        if len(letter) == 1 and "A" <= letter < chr(65 + len(question.options)):
            return ord(letter) - 65
        return None
    if isinstance(question, TrueFalseQuestion):
        word = text.lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
        return None
    # Calculation and quick-calc answers are scored from the raw text
    return text


def prompt_for(session: QuizSession, question: BaseQuestion) -> str:
    commands = f"{BACK_COMMAND} back, {QUIT_COMMAND} quit"
    if session.hints_visible:
        commands = f"{HINT_COMMAND} hint, {commands}"
    if isinstance(question, MultipleChoiceQuestion):
        last = chr(64 + len(question.options))
        kind = f"Answer A-{last}"
    elif isinstance(question, TrueFalseQuestion):
        kind = "Answer t/f"
    else:
        kind = "Answer"
    return f"{kind} ({commands})"


def format_time(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


def display_intro(quiz: QuizDefinition) -> None:
    """Display the module overview before a quiz starts."""
    info = quiz.module_info
    table = Table(title=f"Module {info.id} Assessment: {info.title}", show_header=False, border_style="cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    if info.category:
        table.add_row("Category", f"{info.category} • {info.level or ''}".strip(" •"))
    table.add_row("Questions", str(quiz.total_questions))
    table.add_row("Passing score", f"{info.passing_score:g}%")
    if info.estimated_time:
        table.add_row("Estimated time", info.estimated_time)
    table.add_row("Timed mode", f"{info.timed_mode_minutes or get_settings().default_timed_minutes:g} min")
    table.add_row("Speed mode", f"{info.speed_mode_minutes or get_settings().default_speed_minutes:g} min, no hints")

    console.print()
    console.print(table)

    sections_table = Table(title="Sections", border_style="cyan")
    sections_table.add_column("Section", style="cyan")
    sections_table.add_column("Questions", justify="right")
    sections_table.add_column("Weight", justify="right")
    for section in quiz.sections:
        sections_table.add_row(section.title, str(section.question_count), f"{section.weight:g}%")
    console.print(sections_table)

    if info.learning_outcomes:
        outcomes = "\n".join(f"• {outcome}" for outcome in info.learning_outcomes)
        console.print(Panel(outcomes, title="Learning Outcomes", border_style="cyan"))


def display_question(session: QuizSession, question: BaseQuestion) -> None:
    """Display the current question with its position and the clock."""
    section = session.current_section
    position = f"Question {session.state.current_question_index + 1}/{section.question_count}"
    header = f"[bold]{section.title}[/bold]  {position}"
    if session.state.remaining_seconds is not None:
        header += f"  [magenta]⏱ {format_time(session.state.remaining_seconds)}[/magenta]"

    console.print()
    console.print(header)

    if isinstance(question, ScenarioQuestion):
        console.print(Panel(question.scenario, title="Scenario", border_style="yellow"))

    console.print(f"\n[bold]{question.question}[/bold]  [dim]({question.difficulty.value})[/dim]")

    current = session.state.answers.get(question.id)
    if isinstance(question, MultipleChoiceQuestion):
        for idx, option in enumerate(question.options):
            marker = "[yellow]»[/yellow]" if current == idx and not isinstance(current, bool) else " "
            console.print(f" {marker} {chr(65 + idx)}. {option}")
    elif isinstance(question, CalculationQuestion) and question.unit:
        console.print(f"  [dim]Unit: {question.unit}[/dim]")

    if current is not None:
        console.print(f"  [dim]Current answer: {escape(str(current))}[/dim]")


def display_results(quiz: QuizDefinition, results: QuizResults) -> None:
    """Display the score, verdict and section breakdown."""
    passing = quiz.module_info.passing_score
    if results.passed:
        verdict = f"[bold green]Congratulations![/bold green]\nYou passed with a weighted score of {results.weighted_score}%"
    else:
        verdict = (
            f"[bold red]Keep Practicing![/bold red]\n"
            f"You need {passing:g}% to pass. You scored {results.weighted_score}%"
        )
    if results.time_spent:
        verdict += f"\nTime: {results.time_spent // 60}m {results.time_spent % 60}s"
    console.print()
    console.print(Panel(verdict, border_style="green" if results.passed else "red"))

    table = Table(title="Section Breakdown", border_style="cyan")
    table.add_column("Section", style="cyan")
    table.add_column("Correct", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")

    for section in quiz.sections:
        section_result = results.section_results[section.id]
        pct = section_result.percentage
        color = "green" if pct >= 80 else "yellow" if pct >= 60 else "red"
        table.add_row(
            section.title,
            f"{section_result.correct}/{section_result.total}",
            f"[{color}]{pct}%[/{color}]",
            f"{section_result.weight:g}%",
        )

    console.print(table)
    console.print(
        f"Total correct: {results.total_correct}/{results.total_questions} ({results.percentage}%)"
    )

    next_module = quiz.module_info.next_module
    if results.passed and next_module:
        console.print(f"\nNext up: module {next_module.id}, {next_module.title}")


@app.callback()
def callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override the LOG_LEVEL setting"
    ),
) -> None:
    """
    Poker Quiz - take weighted, timed poker skill assessments.
    """
    if log_level is None:
        try:
            log_level = get_settings().log_level
        except ValidationError as e:
            console.print(f"[red]Configuration error:[/red] {escape(str(e))}", style="bold")
            raise typer.Exit(code=1)
    configure_logging(log_level)


if __name__ == "__main__":
    app()
