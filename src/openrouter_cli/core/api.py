"""
OpenRouter API Client for openrouter-cli

Builds chat-completion and model-list requests, performs a single HTTP
attempt per call, and turns the result into typed responses or classified
errors.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import structlog

from .config import Config
from .errors import APIError, TransportError

logger = structlog.get_logger(__name__)

REFERER = "https://github.com/kdevrou/openrouter-cli"
CLIENT_TITLE = "OpenRouter CLI"


@dataclass
class Message:
    """Chat message structure"""
    role: str  # "user", "assistant", "system"
    content: str


@dataclass
class ChatRequest:
    """Chat completion request"""
    model: str
    messages: List[Message]
    temperature: float = 0.0
    max_tokens: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Wire form; zero temperature and max_tokens are omitted"""
        data: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in self.messages],
        }
        if self.temperature:
            data["temperature"] = self.temperature
        if self.max_tokens:
            data["max_tokens"] = self.max_tokens
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatRequest":
        return cls(
            model=data["model"],
            messages=[Message(role=m["role"], content=m["content"]) for m in data["messages"]],
            temperature=data.get("temperature", 0.0),
            max_tokens=data.get("max_tokens", 0),
        )


@dataclass
class Choice:
    """A completion choice"""
    index: int
    message: Message
    finish_reason: str = ""


@dataclass
class Usage:
    """Token usage statistics"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ChatResponse:
    """Response from chat completion"""
    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: List[Choice] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatResponse":
        """
        Decode the success envelope. Missing fields take their zero values;
        fields of the wrong shape raise ValueError, TypeError or KeyError.
        """
        if not isinstance(data, dict):
            raise TypeError("response is not a JSON object")

        choices = []
        for choice in data.get("choices") or []:
            message = choice.get("message") or {}
            choices.append(Choice(
                index=int(choice.get("index", 0)),
                message=Message(
                    role=str(message.get("role") or ""),
                    content=str(message.get("content") or ""),
                ),
                finish_reason=str(choice.get("finish_reason") or ""),
            ))

        usage = data.get("usage") or {}
        return cls(
            id=str(data.get("id") or ""),
            object=str(data.get("object") or ""),
            created=int(data.get("created") or 0),
            model=str(data.get("model") or ""),
            choices=choices,
            usage=Usage(
                prompt_tokens=int(usage.get("prompt_tokens") or 0),
                completion_tokens=int(usage.get("completion_tokens") or 0),
                total_tokens=int(usage.get("total_tokens") or 0),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ModelPricing:
    """Per-token prices as decimal strings; "0" means free"""
    prompt: str = ""
    completion: str = ""


@dataclass
class Architecture:
    """Architectural information about a model"""
    modality: str = ""
    tokenizer: str = ""
    instruct_type: Optional[str] = None


@dataclass
class ModelInfo:
    """Information about a model"""
    id: str
    name: str = ""
    created: int = 0
    context_length: int = 0
    pricing: ModelPricing = field(default_factory=ModelPricing)
    architecture: Architecture = field(default_factory=Architecture)
    description: Optional[str] = None
    # String or object depending on the upstream provider
    top_provider: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelInfo":
        pricing = data.get("pricing") or {}
        architecture = data.get("architecture") or {}
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            created=int(data.get("created") or 0),
            context_length=int(data.get("context_length") or 0),
            pricing=ModelPricing(
                prompt=str(pricing.get("prompt") or ""),
                completion=str(pricing.get("completion") or ""),
            ),
            architecture=Architecture(
                modality=str(architecture.get("modality") or ""),
                tokenizer=str(architecture.get("tokenizer") or ""),
                instruct_type=architecture.get("instruct_type"),
            ),
            description=data.get("description"),
            top_provider=data.get("top_provider"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["architecture"]["instruct_type"] is None:
            del data["architecture"]["instruct_type"]
        for key in ("description", "top_provider"):
            if data[key] is None:
                del data[key]
        return data


def parse_api_error(status_code: int, body: bytes) -> APIError:
    """
    Classify an error response body. Provider error shapes vary, so every
    shape yields an APIError rather than raising.
    """
    text = body.decode("utf-8", errors="replace")
    try:
        error_resp = json.loads(text)
    except ValueError:
        error_resp = None

    if not isinstance(error_resp, dict):
        return APIError(status_code, f"HTTP {status_code}: {text}")

    message = ""
    error_type = None
    error = error_resp.get("error")
    if isinstance(error, dict):
        if "message" in error:
            message = str(error["message"])
        if "type" in error:
            error_type = str(error["type"])
    elif isinstance(error, str):
        message = error

    if not message:
        message = "Unknown error"

    return APIError(status_code, message, error_type)


class OpenRouterClient:
    """
    OpenRouter API client. Each call makes exactly one HTTP attempt.
    """

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.base_url = config.api_base_url.rstrip("/")

        self.client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {config.require_api_key()}",
                "HTTP-Referer": REFERER,
                "X-Title": CLIENT_TITLE,
            },
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
        )

        logger.info("OpenRouter client initialized", base_url=self.base_url)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body of a successful
        response
        """
        url = f"{self.base_url}{endpoint}"

        try:
            if method == "GET":
                response = await self.client.get(url)
            elif method == "POST":
                response = await self.client.post(url, json=data)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
            body = response.content
        except httpx.TimeoutException as e:
            logger.error("Request timed out", url=url, timeout=self.config.timeout)
            raise TransportError(f"request timed out after {self.config.timeout}s: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Request failed", url=url, error=str(e))
            raise TransportError(f"failed to send request: {e}") from e

        logger.debug("Received response", url=url, status=response.status_code, size=len(body))

        if response.status_code >= 400:
            error = parse_api_error(response.status_code, body)
            logger.warning(
                "API returned an error",
                status=error.status_code,
                error_type=error.type,
                message=error.message,
            )
            raise error

        try:
            return json.loads(body)
        except ValueError as e:
            raise TransportError(f"failed to parse response: {e}") from e

    async def chat_completion(self, request: ChatRequest) -> ChatResponse:
        """Create a chat completion"""
        if not request.messages:
            raise ValueError("Messages cannot be empty")

        logger.info("Sending chat completion", model=request.model, base_url=self.base_url)
        data = await self._make_request("POST", "/chat/completions", request.to_dict())

        try:
            return ChatResponse.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransportError(f"failed to parse response: {e}") from e

    async def get_models(self) -> List[ModelInfo]:
        """Get list of available models"""
        data = await self._make_request("GET", "/models")

        try:
            models = [ModelInfo.from_dict(m) for m in data.get("data") or []]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransportError(f"failed to parse response: {e}") from e

        logger.info("Retrieved models", count=len(models))
        return models
