import logging
from typing import Any, Dict

from pydantic import BaseModel, ValidationError

from ..context import ToolContext
from ..errors import ProviderError
from ..registry import ToolDefinition
from ..schemas import TranslateParams


TRANSLATOR_SYSTEM = "You are a helpful assistant that translates text from one language to another."


class Translation(BaseModel):
    translated_text: str
    detected_language: str


async def text_translate(params: TranslateParams, ctx: ToolContext) -> Dict[str, Any]:
    if ctx.llm is None:
        raise ProviderError("language-model", "no model available for translation")
    try:
        translation = await ctx.llm.generate_object(
            model=ctx.model,
            schema=Translation,
            system=TRANSLATOR_SYSTEM,
            prompt=f"Translate the following text to {params.to} language: {params.text}",
        )
    except ValidationError as e:
        raise ProviderError("language-model", "translation output did not match the expected shape") from e
    logging.info("Translated %d chars to %s (detected %s)", len(params.text), params.to, translation.detected_language)
    return translation.model_dump()


TEXT_TRANSLATE = ToolDefinition(
    name="text_translate",
    description="Translate text from one language to another.",
    parameters=TranslateParams,
    execute=text_translate,
)
