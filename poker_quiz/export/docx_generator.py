"""DOCX report generator for quiz results."""

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from poker_quiz.models.quiz import (
    BaseQuestion,
    CalculationQuestion,
    MultipleChoiceQuestion,
    QuickCalcQuestion,
    QuizDefinition,
    QuizResults,
    QuizSection,
    ScenarioQuestion,
    TrueFalseQuestion,
)

GREEN = RGBColor(0, 128, 0)
AMBER = RGBColor(255, 140, 0)
RED = RGBColor(200, 0, 0)
GREY = RGBColor(128, 128, 128)
NAVY = RGBColor(0, 51, 102)


def ensure_output_directory(output_dir: str = "output") -> Path:
    """
    Ensure the output directory exists.

    Args:
        output_dir: Directory path to create

    Returns:
        Path object for the output directory
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    return output_path


def generate_timestamped_filename(base_name: str, extension: str = "docx") -> str:
    """
    Generate a filename with timestamp.

    Args:
        base_name: Base name for the file
        extension: File extension (without dot)

    Returns:
        Filename with timestamp
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    # Clean the base name to remove any path components
    base_name = Path(base_name).name
    return f"{base_name}_{timestamp}.{extension}"


def score_color(percentage: float) -> RGBColor:
    """Green from 80%, amber from 60%, red below."""
    if percentage >= 80:
        return GREEN
    if percentage >= 60:
        return AMBER
    return RED


def format_duration(seconds: int) -> str:
    """Render seconds as '12m 5s'."""
    return f"{seconds // 60}m {seconds % 60}s"


def format_answer(question: BaseQuestion, value: Any) -> str:
    """
    Render a learner's answer the way it was presented.

    Args:
        question: Question that was answered
        value: Raw answer, or None if unanswered

    Returns:
        Human readable answer
    """
    if value is None:
        return "No answer"
    if isinstance(question, MultipleChoiceQuestion):
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < len(question.options):
            return f"{chr(65 + value)}. {question.options[value]}"
        return str(value)
    if isinstance(question, TrueFalseQuestion) and isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(question, CalculationQuestion) and question.unit:
        return f"{value} {question.unit}"
    return str(value)


def format_correct_answer(question: BaseQuestion) -> str:
    """Render the expected answer for the review table."""
    if isinstance(question, MultipleChoiceQuestion):
        return format_answer(question, question.correct_answer)
    if isinstance(question, TrueFalseQuestion):
        return format_answer(question, question.correct_answer)
    if isinstance(question, CalculationQuestion):
        low, high = question.acceptable_range
        unit = f" {question.unit}" if question.unit else ""
        if low == high:
            return f"{low:g}{unit}"
        return f"{low:g} to {high:g}{unit}"
    if isinstance(question, QuickCalcQuestion):
        return question.correct_answer or " / ".join(question.acceptable_answers)
    return "N/A"


def export_results_to_docx(
    quiz: QuizDefinition,
    results: QuizResults,
    output_path: str,
    answers: Mapping[str, Any] | None = None,
    use_output_dir: bool = True,
    output_dir: str = "output",
) -> str:
    """
    Export an attempt's results to a formatted DOCX report.

    Args:
        quiz: Quiz that was taken
        results: Results of the attempt
        output_path: Path where the DOCX file should be saved (can be relative or absolute)
        answers: Answer record; when given, a per-question review is included
        use_output_dir: If True, saves to output directory with timestamp (default: True)
        output_dir: Directory to save files in (default: "output")

    Returns:
        Path to the created DOCX file
    """
    if use_output_dir:
        output_dir_path = ensure_output_directory(output_dir)
        filename = generate_timestamped_filename(Path(output_path).stem)
        output_path = str(output_dir_path / filename)

    doc = Document()
    setup_document_styles(doc)

    info = quiz.module_info
    title = doc.add_heading(f"Module {info.id} Assessment: {info.title}", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    add_score_header(doc, quiz, results)
    add_section_breakdown(doc, quiz, results)

    if answers is not None:
        doc.add_page_break()
        review_heading = doc.add_heading("Question Review", level=1)
        review_heading.runs[0].font.color.rgb = NAVY
        for section in quiz.sections:
            add_section_review(doc, section, results, answers)

    doc.save(output_path)

    return output_path


def setup_document_styles(doc: Document) -> None:
    """
    Set up document-wide styles.

    Args:
        doc: Document to configure
    """
    style = doc.styles["Normal"]
    font = style.font
    font.name = "Calibri"
    font.size = Pt(11)

    for section in doc.sections:
        section.top_margin = Inches(1)
        section.bottom_margin = Inches(1)
        section.left_margin = Inches(1)
        section.right_margin = Inches(1)


def add_score_header(doc: Document, quiz: QuizDefinition, results: QuizResults) -> None:
    """Add the pass/fail verdict, scores and time spent."""
    verdict = doc.add_paragraph()
    verdict.alignment = WD_ALIGN_PARAGRAPH.CENTER
    verdict_run = verdict.add_run("Passed" if results.passed else "Not Passed")
    verdict_run.bold = True
    verdict_run.font.size = Pt(16)
    verdict_run.font.color.rgb = GREEN if results.passed else RED

    score_para = doc.add_paragraph()
    score_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    score_para.add_run(f"Weighted Score: {results.weighted_score}%").bold = True
    score_para.add_run("  |  ")
    score_para.add_run(f"Passing Score: {quiz.module_info.passing_score:g}%")

    stats_para = doc.add_paragraph()
    stats_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    stats_para.add_run(
        f"Correct: {results.total_correct}/{results.total_questions} ({results.percentage}%)"
    )
    if results.mode:
        stats_para.add_run(f"  |  Mode: {results.mode.value.capitalize()}")
    if results.time_spent:
        stats_para.add_run(f"  |  Time: {format_duration(results.time_spent)}")

    date_para = doc.add_paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    date_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    date_para.runs[0].font.size = Pt(9)
    date_para.runs[0].font.color.rgb = GREY


def add_section_breakdown(
    doc: Document, quiz: QuizDefinition, results: QuizResults
) -> None:
    """
    Add a table with one row per section.

    Args:
        doc: Document to add to
        quiz: Quiz that was taken
        results: Results of the attempt
    """
    heading = doc.add_heading("Section Breakdown", level=1)
    heading.runs[0].font.color.rgb = NAVY

    table = doc.add_table(rows=1, cols=4)
    table.style = "Light Grid Accent 1"

    header_cells = table.rows[0].cells
    header_cells[0].text = "Section"
    header_cells[1].text = "Correct"
    header_cells[2].text = "Score"
    header_cells[3].text = "Weight"

    for cell in header_cells:
        for paragraph in cell.paragraphs:
            for run in paragraph.runs:
                run.bold = True

    for section in quiz.sections:
        section_result = results.section_results[section.id]
        row_cells = table.add_row().cells
        row_cells[0].text = section.title
        row_cells[1].text = f"{section_result.correct}/{section_result.total}"
        row_cells[2].text = f"{section_result.percentage}%"
        row_cells[3].text = f"{section_result.weight:g}%"
        for run in row_cells[2].paragraphs[0].runs:
            run.font.color.rgb = score_color(section_result.percentage)

    doc.add_paragraph()


def add_section_review(
    doc: Document,
    section: QuizSection,
    results: QuizResults,
    answers: Mapping[str, Any],
) -> None:
    """
    Add each question of a section with the learner's answer and the explanation.

    Args:
        doc: Document to add to
        section: Section to review
        results: Results holding per-question correctness
        answers: Answer record keyed by question id
    """
    section_heading = doc.add_heading(section.title, level=2)
    section_heading.runs[0].font.color.rgb = RGBColor(0, 102, 204)

    for i, question in enumerate(section.questions, 1):
        correct = results.question_results.get(question.id, False)

        if isinstance(question, ScenarioQuestion):
            scenario_para = doc.add_paragraph(question.scenario)
            scenario_para.runs[0].italic = True

        q_para = doc.add_paragraph()
        q_run = q_para.add_run(f"Q{i}. ")
        q_run.bold = True
        q_run.font.size = Pt(12)
        q_para.add_run(question.question)

        answer_para = doc.add_paragraph()
        answer_para.paragraph_format.left_indent = Inches(0.5)
        answer_run = answer_para.add_run(
            f"Your answer: {format_answer(question, answers.get(question.id))}"
        )
        answer_run.font.color.rgb = GREEN if correct else RED
        answer_para.add_run(" ✓" if correct else " ✗").font.color.rgb = (
            GREEN if correct else RED
        )

        if not correct:
            expected_para = doc.add_paragraph(
                f"Correct answer: {format_correct_answer(question)}"
            )
            expected_para.paragraph_format.left_indent = Inches(0.5)

        if question.explanation:
            exp_para = doc.add_paragraph()
            exp_para.paragraph_format.left_indent = Inches(0.5)
            exp_run = exp_para.add_run(f"Explanation: {question.explanation}")
            exp_run.italic = True
            exp_run.font.size = Pt(10)
            exp_run.font.color.rgb = RGBColor(64, 64, 64)

        doc.add_paragraph()
