"""Dynamic option loaders and the credential check."""

from .context import ExecutionContext
from .errors import NodeOperationError
from .generic_client import arivo_api_request

CREDENTIAL_TEST_PATH = "/teams"


async def verify_credentials(context: ExecutionContext) -> bool:
    """Cheapest authenticated call; raises NodeApiError if the key is rejected."""
    await arivo_api_request(context, "GET", CREDENTIAL_TEST_PATH, query={"per_page": 1})
    return True


async def get_custom_fields(context: ExecutionContext, field_type: str) -> list[dict]:
    """Custom fields of one entity type as name/value option pairs.

    The API answers with an object keyed by field key, each value holding
    the field's metadata (``label``, ``field_type``).
    """
    data = await arivo_api_request(context, "GET", f"/custom_fields/{field_type}")
    if data is None:
        raise NodeOperationError(context.node, "No data got returned")
    if not isinstance(data, dict):
        raise NodeOperationError(context.node, f"Unexpected custom fields response for {field_type}")

    options = []
    for key, field in data.items():
        label = field.get("label") if isinstance(field, dict) else None
        options.append({"name": label or key, "value": key})
    return options


async def get_person_custom_fields(context: ExecutionContext) -> list[dict]:
    return await get_custom_fields(context, "person")


async def get_company_custom_fields(context: ExecutionContext) -> list[dict]:
    return await get_custom_fields(context, "company")


async def get_deal_custom_fields(context: ExecutionContext) -> list[dict]:
    return await get_custom_fields(context, "deal")
