# POST /api/generate-prompt — prompt assistant endpoint (THIN)

from fastapi import APIRouter, Depends, Request

from productshot.config import Settings
from productshot.credentials import resolve_credential
from productshot.dependencies import admit_request, get_prompt_assistant, get_settings_dep
from productshot.forms import parse_body
from productshot.rate_limit import RateDecision, http_limit_value, http_limiter
from productshot.schemas import PromptRequest, PromptResponse, RateLimitSnapshot
from productshot.services.oauth import ACCESS_COOKIE
from productshot.services.prompt_assistant import PromptAssistant

router = APIRouter(prefix="/api")


@router.post("/generate-prompt", response_model=PromptResponse)
@http_limiter.limit(http_limit_value)
async def generate_prompt(
    request: Request,
    decision: RateDecision = Depends(admit_request),
    assistant: PromptAssistant = Depends(get_prompt_assistant),
    settings: Settings = Depends(get_settings_dep),
) -> PromptResponse:
    """Draft a photography prompt from product details (and the photo, if sent).

    Credential order: server OPENAI_API_KEY, then the client's apiKey, then
    an OAuth access token cookie.
    """
    body = await parse_body(request, PromptRequest, settings.max_upload_bytes)

    credential = resolve_credential(settings.openai_api_key, body.api_key)
    oauth = False
    if credential is None and request.cookies.get(ACCESS_COOKIE):
        credential = request.cookies[ACCESS_COOKIE]
        oauth = True

    messages = assistant.build_messages(
        body.product_type, body.brand_style, body.target_audience, body.image
    )
    prompt = await assistant.draft(messages, credential, oauth=oauth)
    return PromptResponse(prompt=prompt, rate_limit=RateLimitSnapshot.from_decision(decision))
