"""Built-in model catalog shown in the model picker."""
from typing import List

from schemas.catalog import ModelInfo


BUILTIN_MODELS: List[ModelInfo] = [
    ModelInfo(
        id="openai/gpt-4-turbo",
        name="GPT-4 Turbo",
        provider="OpenAI",
        description="Most capable model for complex tasks",
        tier="premium",
    ),
    ModelInfo(
        id="anthropic/claude-3-opus",
        name="Claude 3 Opus",
        provider="Anthropic",
        description="Top reasoning and creative writing",
        tier="premium",
    ),
    ModelInfo(
        id="anthropic/claude-3-sonnet",
        name="Claude 3 Sonnet",
        provider="Anthropic",
        description="Balanced model for reasoning and creativity",
        tier="premium",
    ),
    ModelInfo(
        id="openai/gpt-3.5-turbo",
        name="GPT-3.5 Turbo",
        provider="OpenAI",
        description="Fast and efficient for most tasks",
        tier="free",
    ),
    ModelInfo(
        id="google/gemini-pro-1.5",
        name="Gemini Pro 1.5",
        provider="Google",
        description="Google's advanced language model",
        tier="premium",
    ),
    ModelInfo(
        id="meta-llama/llama-3.3-70b-instruct",
        name="Llama 3.3 70B Instruct",
        provider="Meta",
        description="Latest open-source model with strong capabilities",
        tier="free",
    ),
]
