from .openai_compatible_client import OpenAICompatibleClient

__all__ = ["OpenAICompatibleClient"]
