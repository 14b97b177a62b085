"""
Test Suite for Export and the CLI
=================================
JSON/PDF export, the PDF reader on generated files and the click commands.
"""

from __future__ import annotations

import json

import fitz
import pytest
from click.testing import CliRunner

from examparser.cli import cli
from examparser.errors import UnreadableSourceError
from examparser.export import derive_exam_title, export_json, render_pdf, save_pdf
from examparser.models import QuestionRecord
from examparser.pdf_reader import PDFReader
from examparser.structured import parse_json_text


EXAM_TEXT = """1. Which service stores objects?
A. EC2
B. S3
C. RDS
D. VPC
Answer: B
Explanation: S3 is object storage.

2. Which service runs virtual machines?
A. EC2
B. S3
C. Lambda
D. SQS
Answer: A
"""


def _records() -> list[QuestionRecord]:
    return [
        QuestionRecord(
            text="Which service stores objects?",
            options=["EC2", "S3", "RDS", "VPC"],
            correct_answer_index=1,
            answer_detected=True,
            explanation="S3 is object storage.",
        ),
        QuestionRecord(
            text="Which service runs virtual machines?",
            options=["EC2", "S3", "Lambda", "SQS"],
            user_answer=2,
        ),
    ]


def _pdf_text(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "".join(page.get_text() for page in doc)


@pytest.fixture
def exam_file(tmp_path):
    path = tmp_path / "aws-practice.txt"
    path.write_text(EXAM_TEXT, encoding="utf-8")
    return path


# ═══════════════════════════════════════════════════════════════════════════════
# EXPORT TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestExport:
    """Test JSON and PDF export."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("aws-saa.vce", "aws-saa - Exam Questions"),
            ("/tmp/dumps/network.pdf", "network - Exam Questions"),
            ("", "Exam Questions"),
        ],
    )
    def test_derive_exam_title(self, filename, expected):
        assert derive_exam_title(filename) == expected

    def test_export_json_can_be_loaded_again(self, tmp_path):
        target = tmp_path / "out" / "exam.json"
        output = export_json(_records(), "AWS - Exam Questions", str(target))

        data = json.loads(target.read_text(encoding="utf-8"))
        assert output == target.read_text(encoding="utf-8")
        assert data["title"] == "AWS - Exam Questions"
        assert data["questions"][0]["correctAnswer"] == 1
        assert data["questions"][1]["userAnswer"] == 2
        assert "correct_letter" not in data["questions"][0]

        reloaded = parse_json_text(output)
        assert [r.text for r in reloaded] == [r.text for r in _records()]
        assert [r.correct_answer_index for r in reloaded] == [1, 0]
        assert reloaded[0].explanation == "S3 is object storage."

    def test_render_pdf(self):
        data = render_pdf(_records(), "AWS - Exam Questions")
        assert data.startswith(b"%PDF")

        text = _pdf_text(data)
        assert "AWS - Exam Questions" in text
        assert "Question 1:" in text
        assert "Question 2:" in text
        assert "B. S3" in text
        assert "Answer: B" in text
        assert "Your answer: C" in text
        assert "Incorrect" in text
        assert "S3 is object storage." in text

    def test_render_pdf_metadata(self):
        data = render_pdf(_records(), "Title Here")
        with fitz.open(stream=data, filetype="pdf") as doc:
            assert doc.metadata["title"] == "Title Here"

    def test_render_pdf_paginates(self):
        records = [
            QuestionRecord(text=f"Question text number {n}?", options=["a", "b", "c", "d"])
            for n in range(60)
        ]
        with fitz.open(stream=render_pdf(records), filetype="pdf") as doc:
            assert doc.page_count > 1

    def test_render_pdf_requires_records(self):
        with pytest.raises(ValueError, match="No valid questions"):
            render_pdf([], "Empty")

    def test_save_pdf_forces_suffix(self, tmp_path):
        written = save_pdf(_records(), "T", str(tmp_path / "exam.txt"))
        assert written.endswith("exam.pdf")
        assert (tmp_path / "exam.pdf").read_bytes().startswith(b"%PDF")


class TestPDFReader:
    """Test fragment extraction from generated PDFs."""

    def test_read_bytes(self):
        pages = PDFReader().read_bytes(render_pdf(_records(), "Reader Test"))

        assert len(pages) == 1
        texts = [f.text for f in pages[0]]
        assert "Reader Test" in texts
        assert "Question 1:" in texts
        ys = [f.y for f in pages[0]]
        assert ys == sorted(ys)

    def test_page_count(self, tmp_path):
        path = tmp_path / "exam.pdf"
        save_pdf(_records(), "T", str(path))
        assert PDFReader().get_page_count(str(path)) == 1

    def test_invalid_pdf(self):
        with pytest.raises(UnreadableSourceError, match="Failed to parse PDF"):
            PDFReader().read_bytes(b"definitely not a pdf")


# ═══════════════════════════════════════════════════════════════════════════════
# CLI TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestCLI:
    """Test the click commands."""

    def test_parse_json_output(self, exam_file):
        result = CliRunner().invoke(cli, ["parse", str(exam_file), "--json-output"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["strategy"] == "strict"
        assert data["title"] == "aws-practice - Exam Questions"
        assert len(data["questions"]) == 2
        assert data["questions"][0]["correctAnswer"] == 1

    def test_parse_table_output(self, exam_file):
        result = CliRunner().invoke(cli, ["parse", str(exam_file)])

        assert result.exit_code == 0, result.output
        assert "Extracted Questions" in result.output
        assert "Extraction Report" in result.output

    def test_parse_missing_file(self, tmp_path):
        result = CliRunner().invoke(cli, ["parse", str(tmp_path / "nope.txt")])
        assert result.exit_code != 0

    def test_quiz_study_mode(self, exam_file):
        result = CliRunner().invoke(cli, ["quiz", str(exam_file)], input="b\nc\n")

        assert result.exit_code == 0, result.output
        assert "Correct!" in result.output
        assert "Incorrect." in result.output
        assert "Score: 1/2 (50%), 2 answered" in result.output

    def test_quiz_exam_mode_end_early(self, exam_file):
        result = CliRunner().invoke(
            cli, ["quiz", str(exam_file), "--mode", "exam"], input="b\ne\n"
        )

        assert result.exit_code == 0, result.output
        assert "Answer recorded." in result.output
        assert "Score: 1/2 (50%), 1 answered" in result.output

    def test_quiz_navigation_errors(self, exam_file):
        result = CliRunner().invoke(cli, ["quiz", str(exam_file)], input="g9\nx\ne\n")

        assert result.exit_code == 0, result.output
        assert "Invalid question index" in result.output
        assert "Unknown choice" in result.output

    def test_export_pdf(self, exam_file, tmp_path):
        target = tmp_path / "printable.pdf"
        result = CliRunner().invoke(cli, ["export", str(exam_file), "-o", str(target)])

        assert result.exit_code == 0, result.output
        assert "Exported 2 questions" in result.output
        assert "Question 2:" in _pdf_text(target.read_bytes())

    def test_export_json_default_target(self, exam_file):
        result = CliRunner().invoke(cli, ["export", str(exam_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(exam_file.with_suffix(".json").read_text(encoding="utf-8"))
        assert data["title"] == "aws-practice - Exam Questions"
        assert len(data["questions"]) == 2

    def test_export_refuses_placeholder(self, tmp_path):
        path = tmp_path / "prose.txt"
        path.write_text("Nothing but prose in this file.", encoding="utf-8")

        result = CliRunner().invoke(cli, ["export", str(path)])

        assert result.exit_code == 1
        assert "No questions found" in result.output

    def test_info(self, exam_file):
        result = CliRunner().invoke(cli, ["info", str(exam_file)])

        assert result.exit_code == 0, result.output
        assert "File Information" in result.output
        assert "strict" in result.output
