# -*- coding: utf-8 -*-

"""
Multi-turn chat against an Azure OpenAI deployment.
"""

import logging

import openai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant that answers the user's questions."
DEFAULT_MAX_COMPLETION_TOKENS = 800
EXIT_COMMANDS = ("exit", "quit")


#=============================================================================
# Retry Policy
#=============================================================================

retry_on_transient_openai_errors = retry(
    retry=retry_if_exception_type((
        openai.RateLimitError,
        openai.InternalServerError,
        openai.APIConnectionError,
        openai.APITimeoutError,
        openai.UnprocessableEntityError
    )),
    wait=wait_exponential(min=2, max=256),
    stop=stop_after_attempt(10),
    reraise=True
)


@retry_on_transient_openai_errors
def create_chat_completion(client, deployment: str, messages: list[dict], max_completion_tokens: int):
    """
    Request one chat completion, retrying transient API errors.

    Args:
        client (openai.AzureOpenAI): Azure OpenAI client.
        deployment (str): Deployment name, passed as the model.
        messages (list[dict]): Conversation so far.
        max_completion_tokens (int): Completion token limit.
    """
    return client.chat.completions.create(
        model=deployment,
        messages=messages,
        max_completion_tokens=max_completion_tokens,
    )


class ChatSession:
    """
    Conversation with a single deployment that keeps the full message history.

    Args:
        client (openai.AzureOpenAI): Azure OpenAI client.
        deployment (str): Deployment name.
        system_prompt (str): First message of the history.
        max_completion_tokens (int): Completion token limit per reply.
    """

    def __init__(self, client, deployment: str, system_prompt: str = DEFAULT_SYSTEM_PROMPT,
                 max_completion_tokens: int = DEFAULT_MAX_COMPLETION_TOKENS):
        self.client = client
        self.deployment = deployment
        self.max_completion_tokens = max_completion_tokens
        self.messages: list[dict] = [{"role": "system", "content": system_prompt}]

    def ask(self, text: str) -> str | None:
        """
        Send one user turn and return the assistant's reply.

        The user turn stays in the history even when the call fails or the
        model returns no content; the assistant turn is only recorded when
        there is one.

        Returns:
            str | None: Reply text, or None when the response carried no content.
        """
        self.messages.append({"role": "user", "content": text})
        response = create_chat_completion(self.client, self.deployment, self.messages, self.max_completion_tokens)

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices and choices[0].message else None
        if not content:
            logging.debug("Chat completion returned no content.")
            return None

        self.messages.append({"role": "assistant", "content": content})
        return content


def is_exit_command(text: str) -> bool:
    return text.strip().lower() in EXIT_COMMANDS
