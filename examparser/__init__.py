"""
Exam Question Extractor
=======================
Extracts multiple-choice questions from exam documents and runs quiz
sessions over them.

Architecture:
    - Text Normalizer: Rebuilds lines from positioned PDF page fragments
    - Strategies: Strict, alternate and lenient text patterns
    - Structured Adapter: Finds question objects in JSON-like exam data
    - Engine: Runs the cascade and the format dispatch, never returns nothing
    - Session: Study/exam navigation, countdown and scoring

Version: 1.0.0
"""

__version__ = "1.0.0"
