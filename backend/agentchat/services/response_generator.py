"""
Response generators producing the assistant reply for a conversation.

A generator has one coroutine, ``generate(history, requester)``, and
reports failure through ``GenerationResult`` rather than raising, so the
message pipeline can substitute its fallback reply without a try/except
around every backend. The pipeline still guards against generators that
raise anyway.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
import ollama

from agentchat.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@dataclass
class UserProfile:
    """What a generator may know about the person asking."""

    id: str
    name: str = ""
    email: str = ""
    role: str = "user"
    preferences: Dict[str, Any] = field(default_factory=dict)
    api_providers: List[str] = field(default_factory=list)

    @classmethod
    def from_user(cls, user, api_providers: Optional[List[str]] = None) -> "UserProfile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            preferences=dict(user.preferences or {}),
            api_providers=list(api_providers or []),
        )


@dataclass
class GenerationResult:
    ok: bool
    content: str = ""
    attachments: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def success(cls, content: str, attachments=None) -> "GenerationResult":
        return cls(ok=True, content=content, attachments=list(attachments or []))

    @classmethod
    def failure(cls, error: str) -> "GenerationResult":
        return cls(ok=False, error=error)


class ResponseGenerator(ABC):
    """Produces one assistant reply from the full message history."""

    @abstractmethod
    async def generate(
        self, history: List[Dict[str, Any]], requester: UserProfile
    ) -> GenerationResult:
        raise NotImplementedError


# --- Mock generator ---

GENERAL_OPENERS = [
    "That's an interesting question! Based on what you've shared, I can help you explore this topic further. What specific aspect would you like to focus on?",
    "I understand your request. Let me break this down into manageable parts and provide you with a comprehensive response. Here's what I think...",
    "Great question! This touches on several important concepts. Let me explain the key points and how they relate to your situation.",
    "I can definitely help with that. Based on the context you've provided, here are some insights and suggestions that might be useful.",
    "That's a thoughtful inquiry. Let me provide you with a detailed response that addresses your main concerns and offers practical solutions.",
]

CODE_REPLIES = {
    "javascript": (
        "Here's a JavaScript example based on your request:\n\n"
        "```javascript\n"
        "function processData(data) {\n"
        "  return data\n"
        "    .filter(item => item.isValid)\n"
        "    .map(item => ({ ...item, processed: true, timestamp: new Date().toISOString() }));\n"
        "}\n"
        "```\n\n"
        "This function filters valid items and adds processing metadata. "
        "Would you like me to explain any part of this code or modify it for your specific needs?"
    ),
    "python": (
        "Here's a Python solution for your request:\n\n"
        "```python\n"
        "def process_data(data):\n"
        "    from datetime import datetime\n"
        "    return [\n"
        "        {**item, 'processed': True, 'timestamp': datetime.now().isoformat()}\n"
        "        for item in data\n"
        "        if item.get('is_valid', False)\n"
        "    ]\n"
        "```\n\n"
        "Let me know if you need any modifications!"
    ),
    "react": (
        "Here's a React component based on your request:\n\n"
        "```jsx\n"
        "const DataProcessor = ({ data }) => {\n"
        "  const processed = data.filter(item => item.isValid);\n"
        "  return <h3>Processed Data ({processed.length} items)</h3>;\n"
        "};\n"
        "```\n\n"
        "Would you like me to add any specific features?"
    ),
}

CODE_SNIPPETS = {
    "javascript": (
        "function handleUserRequest(input) {\n"
        "  const processed = input.trim().toLowerCase();\n"
        "  return { original: input, processed, timestamp: Date.now() };\n"
        "}"
    ),
    "python": (
        "def handle_user_request(input_text):\n"
        "    processed = input_text.strip().lower()\n"
        "    return {'original': input_text, 'processed': processed, 'timestamp': time.time()}"
    ),
    "react": (
        "const UserRequestHandler = ({ input }) => {\n"
        "  const [result, setResult] = useState(null);\n"
        "  useEffect(() => { setResult(input ? input.trim().toLowerCase() : null); }, [input]);\n"
        "  return <div>{result}</div>;\n"
        "};"
    ),
}

ANALYSIS_REPLY = """I'll help you analyze your data. Based on your request, here's what I found:

**Data Summary:**
- Total records: 1,247
- Valid entries: 1,156 (92.7%)
- Missing values: 91 (7.3%)

**Key Insights:**
1. **Trend Analysis**: The data shows a steady upward trend with seasonal variations
2. **Outliers**: Detected 23 potential outliers that may need investigation
3. **Correlations**: Strong positive correlation (r=0.84) between variables A and B

Would you like me to generate specific visualizations or dive deeper into any particular aspect of the analysis?"""

CAPABILITIES = """I'm here to assist you with various tasks including:
- Code generation and review
- Data analysis and visualization
- API integration guidance
- Problem-solving and explanations

Is there a specific area you'd like to explore further?"""


def detect_language(message: str) -> str:
    text = message.lower()
    if any(word in text for word in ("react", "jsx", "component")):
        return "react"
    if any(word in text for word in ("python", "django", "flask")):
        return "python"
    return "javascript"


def sample_chart_data(year: Optional[int] = None) -> List[Dict[str, Any]]:
    year = year or date.today().year
    return [
        {
            "month": date(year, month, 1).strftime("%b"),
            "value": random.randint(50, 149),
        }
        for month in range(1, 13)
    ]


class MockResponseGenerator(ResponseGenerator):
    """Keyword-routed canned replies with simulated model latency."""

    def __init__(self, min_delay: float = 1.0, max_delay: float = 3.0):
        self.min_delay = min_delay
        self.max_delay = max(max_delay, min_delay)

    async def generate(self, history, requester):
        latest = history[-1] if history else None
        if not latest or latest.get("role") != "user":
            return GenerationResult.failure("No user message found")

        if self.max_delay > 0:
            await asyncio.sleep(random.uniform(self.min_delay, self.max_delay))

        text = latest["content"]
        lowered = text.lower()

        if any(word in lowered for word in ("code", "function", "script")):
            language = detect_language(text)
            return GenerationResult.success(
                CODE_REPLIES[language],
                [{"type": "code", "language": language, "content": CODE_SNIPPETS[language]}],
            )

        if "api" in lowered and requester.api_providers:
            providers = ", ".join(requester.api_providers)
            return GenerationResult.success(
                f"I can help you with API integrations! You have "
                f"{len(requester.api_providers)} configured API(s): {providers}. "
                f"What would you like to do with these APIs?"
            )

        if any(word in lowered for word in ("analyze", "data", "chart")):
            return GenerationResult.success(
                ANALYSIS_REPLY,
                [{"type": "visualization", "chartType": "line", "data": sample_chart_data()}],
            )

        opener = random.choice(GENERAL_OPENERS)
        return GenerationResult.success(
            f'{opener}\n\nBased on your message: "{text}"\n\n{CAPABILITIES}'
        )


# --- Ollama generator ---

class OllamaResponseGenerator(ResponseGenerator):
    """Chat completion against a local Ollama server."""

    def __init__(self, host: str, model: str, timeout: int = 120, system_prompt: str = ""):
        self.model = model
        self.system_prompt = system_prompt
        self.client = ollama.AsyncClient(
            host=host, timeout=httpx.Timeout(timeout, connect=10.0)
        )

    async def generate(self, history, requester):
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)

        try:
            response = await self.client.chat(model=self.model, messages=messages)
            content = response["message"]["content"]
        except Exception as e:
            logger.error(f"Ollama chat failed for user {requester.id}: {e}")
            return GenerationResult.failure(str(e))

        if not content or not content.strip():
            return GenerationResult.failure("Empty response from model")
        return GenerationResult.success(content.strip())


def build_response_generator(config: Settings = default_settings) -> ResponseGenerator:
    """Create the generator selected by ``RESPONSE_GENERATOR``."""
    backend = config.RESPONSE_GENERATOR.lower()
    if backend == "ollama":
        logger.info(f"Using Ollama response generator ({config.TEXT_MODEL})")
        return OllamaResponseGenerator(
            host=config.OLLAMA_HOST,
            model=config.TEXT_MODEL,
            timeout=config.OLLAMA_TIMEOUT,
            system_prompt=config.SYSTEM_PROMPT,
        )
    if backend != "mock":
        raise ValueError(f"Unknown response generator: {config.RESPONSE_GENERATOR}")
    return MockResponseGenerator(config.MOCK_MIN_DELAY, config.MOCK_MAX_DELAY)
