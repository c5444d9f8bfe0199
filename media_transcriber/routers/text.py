"""Text post-processing router (placeholder translation and sentence reflow)."""

from fastapi import APIRouter, Body, Depends, HTTPException

from media_transcriber.dependencies import verify_api_key
from media_transcriber.models import ProcessTextRequest, ProcessTextResponse, TextOperations
from media_transcriber.utils.text_utils import process_text


router = APIRouter(tags=["Text"])


@router.post("/process-text")
async def process_text_endpoint(
    request: ProcessTextRequest = Body(...),
    _: bool = Depends(verify_api_key)
):
    """
    Apply optional translation and formatting to raw text.

    Both operations default to true. Translation is a placeholder that only
    tags the text; formatting puts one sentence per paragraph.
    """
    if not request.text or not request.text.strip():
        raise HTTPException(status_code=400, detail="No text provided")

    try:
        processed = process_text(request.text, request.should_translate, request.should_format)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error processing text: {str(e)}")

    return ProcessTextResponse(
        processed_text=processed,
        operations=TextOperations(
            translated=request.should_translate,
            formatted=request.should_format
        )
    ).model_dump(by_alias=True)
