"""Reading and writing records as JSON files."""

import os
import tempfile
from pathlib import Path
from typing import Type, TypeVar, Union

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def save_json_file(record: BaseModel, path: Union[str, Path]) -> None:
    """Write ``record`` to ``path`` as indented JSON.

    The JSON goes to a temporary file in the same directory, which then replaces ``path``.
    A reader racing with the write, or a run killed halfway, sees either the old file or the
    new one. Missing parent directories are created.

    Parameters
    ----------
    record : BaseModel
        Record to serialize.
    path : Union[str, Path]
        Destination file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(record.model_dump_json(indent=2))
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def load_json_file(model_cls: Type[ModelT], path: Union[str, Path]) -> ModelT:
    """Parse the JSON file at ``path`` into a ``model_cls`` instance.

    Raises
    ------
    OSError
        If the file cannot be opened.
    ValidationError
        If the content is not valid JSON or does not fit ``model_cls``.
    """
    with open(Path(path), "r", encoding="utf-8") as f:
        return model_cls.model_validate_json(f.read())
