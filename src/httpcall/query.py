"""JSON path queries over response bodies.

Expressions follow the usual JSON path syntax as implemented by jsonpath-ng's
extended parser, for example::

    $.store.book[*].author         the authors of all books
    $..author                      all authors
    $.store.*                      everything in the store
    $..book[2]                     the third book
    $..book[-1]                    the last book
    $..book[0,1]                   the first two books
    $..book[:2]                    books from index 0 (inclusive) to 2 (exclusive)
    $..book[?(@.isbn)]             all books with an ISBN number
    $.store.book[?(@.price < 10)]  all books cheaper than 10

A *definite* path (only named children and single indexes) yields a single
value and fails when nothing matches. Any other path yields a list, which may
be empty.
"""

import json
import logging
from typing import Any, Optional, Type, TypeVar, Union

from jsonpath_ng.ext import parse
from jsonpath_ng.jsonpath import Child, Fields, Index, JSONPath, Root, This

from httpcall.error import QueryError

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSONPATH_LOGGER = "jsonpath_ng"


def is_definite(expr: JSONPath) -> bool:
    """Returns whether a parsed expression selects at most one value."""
    match expr:
        case Root() | This():
            return True
        case Child():
            return is_definite(expr.left) and is_definite(expr.right)
        case Fields():
            return len(expr.fields) == 1 and expr.fields[0] != "*"
        case Index():
            # releases before 1.6 only support a single index
            indices = getattr(expr, "indices", None)
            return indices is None or len(indices) == 1
    return False


def read_json_path(
    document: Union[str, bytes, Any],
    path: str,
    debug: bool = False,
    expected_type: Optional[Type[T]] = None,
) -> Any:
    """Evaluate a JSON path expression against a document.

    Args:
        document: JSON text, or an already decoded document.

        path: The JSON path expression.

        debug: Whether the query engine should log at DEBUG level.

        expected_type: When set, the type the selected value must have.

    Returns:
        The selected value for definite paths, or the list of selected
        values for any other path.

    Raises:
        QueryError: if a definite path matches nothing, or if the value does
            not have the expected type.
    """
    logging.getLogger(JSONPATH_LOGGER).setLevel(
        logging.DEBUG if debug else logging.WARNING
    )

    if isinstance(document, (str, bytes)):
        document = json.loads(document)

    expr = parse(path)
    values = [m.value for m in expr.find(document)]
    logger.debug("json path %s matched %d value(s)", path, len(values))

    result: Any
    if is_definite(expr):
        if not values:
            raise QueryError(f"no value matches json path {path!r}")
        result = values[0]
    else:
        result = values

    if expected_type is not None and not isinstance(result, expected_type):
        raise QueryError(
            f"json path {path!r} selected a {type(result).__name__}, expected {expected_type.__name__}"
        )
    return result
