"""Export functionality for quiz result reports."""

from .docx_generator import export_results_to_docx, format_answer, format_correct_answer

__all__ = ["export_results_to_docx", "format_answer", "format_correct_answer"]
