"""
Document Extraction Backend Application.

A FastAPI service that extracts user-defined columns from PDF, image, Word
and text documents using AI (OpenAI), with chat over the resulting table.
"""

__version__ = "1.0.0"
