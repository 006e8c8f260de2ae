"""
TaskValet Protocols - Abstract interfaces for dependency injection

These protocols define the contracts that external implementations must fulfill.
The agent loop only needs text in, text out, so any LLM provider fits.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextGenerationProtocol(Protocol):
    """
    Abstract interface for the LLM collaborator of the agent loop

    Retries, rate limiting and timeouts are the implementation's
    responsibility; any exception it raises ends the current turn.

    Example:
        class MyLLMClient:
            async def generate(self, prompt: str) -> str:
                response = await openai.chat.completions.create(
                    model="gpt-4o-mini",
                    messages=[{"role": "user", "content": prompt}],
                )
                return response.choices[0].message.content
    """

    async def generate(self, prompt: str) -> str:
        """
        Generate a completion for a single prompt

        Args:
            prompt: Full prompt (system text, instructions and transcript)

        Returns:
            Raw model output
        """
        ...
