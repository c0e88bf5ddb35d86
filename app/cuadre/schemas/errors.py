from pydantic import BaseModel


class ApiErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | list | str | None = None
    trace_id: str | None = None


class ApiValidationErrorItem(BaseModel):
    field: str | None = None
    message: str
    type: str
    loc: list[str | int] | None = None


class ApiValidationErrorDetails(BaseModel):
    errors: list[ApiValidationErrorItem]


class ApiValidationErrorResponse(ApiErrorResponse):
    details: ApiValidationErrorDetails | dict | None = None


def error_responses(*status_codes: int) -> dict:
    """OpenAPI ``responses`` entries for the error payloads a route can return."""
    responses: dict = {}
    for status_code in status_codes:
        model = ApiValidationErrorResponse if status_code == 422 else ApiErrorResponse
        responses[status_code] = {"model": model}
    return responses
