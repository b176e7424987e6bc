"""Shared field types and the pydantic base model of every record."""

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

NonEmptyString = Annotated[str, StringConstraints(min_length=1)]
"""A string with at least one character, e.g. a library name."""

PositiveInt = Annotated[int, Field(gt=0)]
"""A strictly positive integer, e.g. a matrix size or a trial count."""

_UNSAFE_FILE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class BaseModelWithDocstrings(BaseModel):
    """Base model whose attribute docstrings end up in the JSON schema of the record."""

    model_config = ConfigDict(use_attribute_docstrings=True)


def safe_file_stem(text: str) -> str:
    """Replace every character that is not safe in a file name with an underscore."""
    return _UNSAFE_FILE_CHARS.sub("_", text)
