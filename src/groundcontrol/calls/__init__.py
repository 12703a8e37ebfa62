"""
Call assignments, interviewee selection and survey submission.

NOTE:
This package __init__ must stay lightweight. Importing models here would
trigger ORM mapping whenever any submodule is imported.
"""

__all__: list[str] = []
