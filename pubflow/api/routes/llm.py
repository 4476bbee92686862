from fastapi import APIRouter, Depends, HTTPException

from pubflow.api.deps import get_llm_client
from pubflow.api.schemas import LLMInvokeRequest, LLMInvokeResponse, LLMUsageModel
from pubflow.components.costs import LLMCallError, LLMRequest, MeteredLLMClient

router = APIRouter()


@router.post("/invoke", response_model=LLMInvokeResponse)
def invoke_llm(
    req: LLMInvokeRequest,
    client: MeteredLLMClient | None = Depends(get_llm_client),
) -> LLMInvokeResponse:
    """Call the LLM gateway; every attempt is priced and logged."""
    if client is None:
        raise HTTPException(status_code=503, detail="LLM gateway is not configured")
    if not req.prompt and not req.messages:
        raise HTTPException(status_code=400, detail="Either prompt or messages is required")

    try:
        response = client.complete(
            LLMRequest(
                provider=req.provider,
                model=req.model,
                prompt=req.prompt,
                messages=req.messages,
                system_prompt=req.system_prompt,
                temperature=req.temperature,
                max_tokens=req.max_tokens,
                content_id=req.content_id,
                agent_name=req.agent_name,
                purpose=req.purpose,
            )
        )
    except LLMCallError as e:
        raise HTTPException(
            status_code=502, detail={"error": e.error, "message": e.message}
        ) from e

    return LLMInvokeResponse(
        content=response.content,
        model=response.model,
        usage=LLMUsageModel(
            input_tokens=response.input_tokens, output_tokens=response.output_tokens
        ),
        cost=response.cost.as_dict(),
    )
