"""FastAPI dependency injection — wires infrastructure to application layer."""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.config import get_settings
from gateway.application.interfaces import ChatProvider, InteractionRepository
from gateway.application.services import (
    ChatCompletionService,
    CostOptimizer,
    DefaultModelPrices,
    ToolPolicyEngine,
    TrustEvaluator,
    UsageAccountant,
)
from gateway.domain.exceptions import EntityNotFoundError
from gateway.infrastructure.database.session import get_session_factory
from gateway.infrastructure.database.repositories import (
    SQLAlchemyAgentRepository,
    SQLAlchemyAgentToolRepository,
    SQLAlchemyInteractionRepository,
    SQLAlchemyOptimizationRuleRepository,
    SQLAlchemyTokenPriceRepository,
)
from gateway.infrastructure.openai_compatible import OpenAICompatibleClient
from gateway.infrastructure.policy import (
    AllowlistToolPolicyEvaluator,
    CostLimitChecker,
    ToolNameTrustedDataPolicy,
)


@lru_cache
def get_default_model_prices() -> DefaultModelPrices:
    """Default price table, read from disk once."""
    return DefaultModelPrices.from_yaml(get_settings().default_prices_file)


def get_provider(provider: str) -> ChatProvider:
    """Resolve the ``{provider}`` path segment to an upstream client.

    Raises:
        EntityNotFoundError: If no base URL is configured for ``provider``.
    """
    settings = get_settings()
    base_url = settings.provider_base_urls.get(provider)
    if base_url is None:
        raise EntityNotFoundError("Provider", provider)
    return OpenAICompatibleClient(
        provider_name=provider,
        base_url=base_url,
        timeout=settings.upstream_timeout_s,
    )


def get_interaction_repository(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> InteractionRepository:
    return SQLAlchemyInteractionRepository(session_factory)


def get_chat_completion_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ChatCompletionService:
    """Provides a ChatCompletionService with every pipeline stage wired up."""
    settings = get_settings()

    interaction_repository = SQLAlchemyInteractionRepository(session_factory)
    optimizer = CostOptimizer(
        rule_repository=SQLAlchemyOptimizationRuleRepository(session_factory),
        price_repository=SQLAlchemyTokenPriceRepository(session_factory),
        default_prices=get_default_model_prices(),
    )

    return ChatCompletionService(
        agent_repository=SQLAlchemyAgentRepository(session_factory),
        agent_tool_repository=SQLAlchemyAgentToolRepository(session_factory),
        limit_checker=CostLimitChecker(interaction_repository),
        trust_evaluator=TrustEvaluator(
            ToolNameTrustedDataPolicy(settings.untrusted_tool_names),
            max_rounds=settings.dual_llm_max_rounds,
        ),
        optimizer=optimizer,
        policy_engine=ToolPolicyEngine(
            AllowlistToolPolicyEvaluator(settings.untrusted_context_allowed_tools)
        ),
        accountant=UsageAccountant(interaction_repository, optimizer),
        checker_models=settings.checker_models,
        compress_tool_results_default=settings.compress_tool_results_default,
    )
