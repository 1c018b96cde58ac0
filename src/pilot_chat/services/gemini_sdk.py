"""Fetcher backed by the google-generativeai SDK."""

from typing import Any, Dict, List, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions

from ..domain.models import FetchOutcome, TransportFailure
from .fetcher import ResponseFetcher, decode_response

logger = structlog.get_logger()


class SdkResponseFetcher(ResponseFetcher):
    """Gemini fetcher using ``GenerativeModel.generate_content_async``."""

    name = "sdk"

    def __init__(self, api_key: Optional[str], model_name: str, model: Any = None):
        if model is None:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)
        self.model = model
        logger.info("response_fetcher_init", backend=self.name, model=model_name)

    async def _generate(self, contents: List[Dict[str, Any]]) -> FetchOutcome:
        try:
            response = await self.model.generate_content_async(contents)
        except exceptions.GoogleAPICallError as e:
            return TransportFailure(reason=str(e), status_code=e.code)
        except exceptions.GoogleAPIError as e:
            return TransportFailure(reason=str(e))
        return decode_response(response.to_dict())
