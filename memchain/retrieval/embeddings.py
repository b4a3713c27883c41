"""
memchain Embeddings - langchain Embeddings backed by litellm

Lets langchain vector stores (InMemoryVectorStore and friends) embed through
the same provider routing and API-key lookup as LiteLLMClient.
"""

import logging
from typing import Any, Dict, List, Optional

from langchain_core.embeddings import Embeddings

from ..llm.litellm_client import litellm_model_name, resolve_api_key

logger = logging.getLogger(__name__)


class LiteLLMEmbeddings(Embeddings):
    """
    Example:
        store = InMemoryVectorStore(LiteLLMEmbeddings(model="text-embedding-3-small"))
        chain.set_context(store)
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        provider_name: str = "openai",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.provider = provider_name.lower()
        self.model_name = litellm_model_name(self.provider, model)
        self.api_key = resolve_api_key(self.provider, api_key)
        self.base_url = base_url
        self.extra = dict(extra or {})

    def request(self, texts: List[str]) -> Dict[str, Any]:
        """Keyword arguments for one litellm embedding call"""
        request: Dict[str, Any] = {"model": self.model_name, "input": texts, **self.extra}
        if self.api_key:
            request["api_key"] = self.api_key
        if self.base_url:
            request["api_base"] = self.base_url
        return request

    @staticmethod
    def _vectors(response: Any) -> List[List[float]]:
        return [list(item["embedding"]) for item in response.data]

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        import litellm

        if not texts:
            return []
        logger.debug(f"Embedding {len(texts)} texts with {self.model_name}")
        return self._vectors(litellm.embedding(**self.request(texts)))

    def embed_query(self, text: str) -> List[float]:
        return self.embed_documents([text])[0]

    async def aembed_documents(self, texts: List[str]) -> List[List[float]]:
        import litellm

        if not texts:
            return []
        logger.debug(f"Embedding {len(texts)} texts with {self.model_name}")
        return self._vectors(await litellm.aembedding(**self.request(texts)))

    async def aembed_query(self, text: str) -> List[float]:
        return (await self.aembed_documents([text]))[0]
