# services/openai_service.py
import openai
import os
from typing import Optional

class OpenAIService:
    """Text generation client. Built once on startup and passed to the composer."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: float = 10.0):
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY must be set in environment variables")

        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        print("✅ OpenAI service initialized")

    async def generate_text(self, prompt: str, max_output_length: int, temperature: float = 0.8) -> str:
        """
        Generate a short piece of text. Returns "" when the model produced nothing;
        transport errors propagate to the caller.
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            # Roughly three characters per token, with headroom for emoji
            max_tokens=max(16, max_output_length // 2)
        )

        if not response.choices:
            return ""

        content = response.choices[0].message.content or ""
        return content.strip().strip('"').strip()
