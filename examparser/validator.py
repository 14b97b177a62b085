"""
Extraction Validator
====================
Post-extraction quality report.

After each extraction, reports:
    - Total Questions and the strategy that produced them
    - Questions whose answer index is only the default
    - Questions Missing Explanation
    - Questions with padded or too few options
    - Answer indices outside the option list
    - Duplicate question texts

Never changes the records it inspects.
"""

from __future__ import annotations

import logging
from collections import Counter

from .models import NO_OPTION_PROVIDED, ExtractionReport, ExtractionResult

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Inspects an ExtractionResult and produces an ExtractionReport.
    """

    def __init__(self, min_options: int = 2):
        self.min_options = min_options

    def validate(self, result: ExtractionResult) -> ExtractionReport:
        """
        Run all checks on an extraction result.

        Args:
            result: Output of the extraction engine.

        Returns:
            ExtractionReport with the 1-based numbers of affected questions.
        """
        report = ExtractionReport(
            total_questions=len(result.questions),
            strategy=result.strategy,
            is_placeholder=result.is_placeholder,
        )

        if result.is_placeholder:
            logger.warning("Extraction produced only a placeholder question")
            return report

        text_counts = Counter(q.text.lower() for q in result.questions)

        for number, q in enumerate(result.questions, start=1):
            if not q.answer_detected:
                report.questions_without_answer.append(number)

            if not q.explanation:
                report.questions_without_explanation.append(number)

            if NO_OPTION_PROVIDED in q.options:
                report.questions_with_padded_options.append(number)

            real_options = [o for o in q.options if o != NO_OPTION_PROVIDED]
            if len(real_options) < self.min_options:
                report.questions_with_few_options.append(number)

            if q.options and q.correct_answer_index >= len(q.options):
                report.answers_out_of_range.append(number)

            if text_counts[q.text.lower()] > 1:
                report.duplicate_questions.append(number)

        # Log summary
        logger.info("=" * 60)
        logger.info("EXTRACTION REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Questions: {report.total_questions} (strategy: {report.strategy})")
        logger.info(
            f"Questions Without Answer: {len(report.questions_without_answer)} "
            f"(answer rate {report.answer_rate}%)"
        )
        logger.info(
            f"Questions Missing Explanation: {len(report.questions_without_explanation)}"
        )
        logger.info(f"Padded Options: {len(report.questions_with_padded_options)}")
        logger.info(f"Duplicate Questions: {len(report.duplicate_questions)}")
        logger.info("=" * 60)

        return report
