"""DynamoDB helpers.

DynamoDB stores numbers as Decimal types, but the pydantic models use int.
This module converts between the two, builds partial update expressions,
and drains paginated queries.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel


def decimal_to_python(obj: Any) -> Any:
    """
    Recursively convert DynamoDB Decimal types to Python int/float types.

    Args:
        obj: Any object that may contain Decimal values

    Returns:
        The object with all Decimal values converted to int or float
    """
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    elif isinstance(obj, dict):
        return {key: decimal_to_python(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [decimal_to_python(item) for item in obj]
    return obj


def python_to_decimal(obj: Any) -> Any:
    """
    Recursively convert Python int/float types to Decimal for DynamoDB storage.

    Floats go through ``str`` to avoid binary precision artifacts. Booleans
    are left alone even though ``bool`` subclasses ``int``.
    """
    if isinstance(obj, float):
        return Decimal(str(round(obj, 6)))
    elif isinstance(obj, int) and not isinstance(obj, bool):
        return Decimal(obj)
    elif isinstance(obj, dict):
        return {key: python_to_decimal(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [python_to_decimal(item) for item in obj]
    return obj


def prepare_for_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """Prepare a Python dictionary for storage in DynamoDB."""
    return python_to_decimal(item)


def parse_from_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """Parse a DynamoDB item to Python-native types."""
    return decimal_to_python(item)


def model_to_item(model: BaseModel) -> dict[str, Any]:
    """Serialize a pydantic model into a DynamoDB item."""
    return prepare_for_dynamodb(model.model_dump(mode="json"))


def build_update_expression(
    changes: dict[str, Any],
    removals: tuple[str, ...] = (),
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """
    Build an update expression for a set of attribute changes.

    Attribute names are always aliased so reserved words such as ``status``
    and ``name`` are safe.

    Args:
        changes: Attribute name to new value (``None`` stores a NULL)
        removals: Attributes to delete instead, e.g. sparse index keys,
            which DynamoDB refuses to hold as NULL

    Returns:
        (UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues)
    """
    if not changes:
        raise ValueError("No changes to apply")

    parts = []
    names = {}
    values = {}
    for index, (attribute, value) in enumerate(changes.items()):
        parts.append(f"#f{index} = :v{index}")
        names[f"#f{index}"] = attribute
        values[f":v{index}"] = python_to_decimal(value)

    expression = "SET " + ", ".join(parts)
    if removals:
        removed = []
        for index, attribute in enumerate(removals):
            names[f"#r{index}"] = attribute
            removed.append(f"#r{index}")
        expression += " REMOVE " + ", ".join(removed)

    return expression, names, values


def query_all(table, **kwargs) -> list[dict[str, Any]]:
    """
    Run a query and follow ``LastEvaluatedKey`` until every page is read.

    Args:
        table: DynamoDB table resource
        **kwargs: Arguments passed straight to ``table.query``

    Returns:
        Parsed items from all pages
    """
    items = []
    while True:
        response = table.query(**kwargs)
        items.extend(parse_from_dynamodb(item) for item in response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key
