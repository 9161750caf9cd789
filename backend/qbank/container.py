"""Dependency injection container — wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from qbank.core import config
from qbank.application.dashboard_app_service import DashboardAppService
from qbank.application.practice_app_service import PracticeAppService
from qbank.application.question_app_service import QuestionAppService
from qbank.application.subscription_app_service import SubscriptionAppService
from qbank.application.user_app_service import UserAppService
from qbank.integrations.payment_gateway import PaymentGateway
from qbank.jobs.subscription_expiry import SubscriptionExpiryJob
from qbank.persistence.db import Database
from qbank.persistence.repositories.sqlite.sqlite_answer_repository import SqliteAnswerRepository
from qbank.persistence.repositories.sqlite.sqlite_question_repository import SqliteQuestionRepository
from qbank.persistence.repositories.sqlite.sqlite_subscription_repository import SqliteSubscriptionRepository
from qbank.persistence.repositories.sqlite.sqlite_user_repository import SqliteUserRepository


@lru_cache(maxsize=1)
def get_database() -> Database:
    return Database(
        config.DATABASE_PATH,
        max_attempts=config.DB_CONNECT_ATTEMPTS,
        retry_delay=config.DB_RETRY_DELAY_SECONDS,
    )


# ------------------------------------------------------------------
# Repositories
# ------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_question_repo() -> SqliteQuestionRepository:
    return SqliteQuestionRepository(get_database())


@lru_cache(maxsize=1)
def get_user_repo() -> SqliteUserRepository:
    return SqliteUserRepository(get_database())


@lru_cache(maxsize=1)
def get_subscription_repo() -> SqliteSubscriptionRepository:
    return SqliteSubscriptionRepository(get_database())


@lru_cache(maxsize=1)
def get_answer_repo() -> SqliteAnswerRepository:
    return SqliteAnswerRepository(get_database())


# ------------------------------------------------------------------
# Services
# ------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_question_app_service() -> QuestionAppService:
    return QuestionAppService(
        repo=get_question_repo(),
        explanation_requires_review=config.EXPLANATION_REQUIRES_REVIEW,
    )


@lru_cache(maxsize=1)
def get_dashboard_app_service() -> DashboardAppService:
    return DashboardAppService(repo=get_question_repo())


@lru_cache(maxsize=1)
def get_user_app_service() -> UserAppService:
    return UserAppService(repo=get_user_repo())


@lru_cache(maxsize=1)
def get_subscription_app_service() -> SubscriptionAppService:
    return SubscriptionAppService(repo=get_subscription_repo())


@lru_cache(maxsize=1)
def get_practice_app_service() -> PracticeAppService:
    return PracticeAppService(answers=get_answer_repo(), questions=get_question_repo())


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway(
        config.PAYMENT_API_URL,
        config.PAYMENT_SECRET_KEY,
        timeout=config.PAYMENT_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_subscription_expiry_job() -> SubscriptionExpiryJob:
    return SubscriptionExpiryJob(
        sweep=get_subscription_app_service().expire_subscriptions,
        interval_seconds=config.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS,
    )


_CACHED = (
    get_database,
    get_question_repo,
    get_user_repo,
    get_subscription_repo,
    get_answer_repo,
    get_question_app_service,
    get_dashboard_app_service,
    get_user_app_service,
    get_subscription_app_service,
    get_practice_app_service,
    get_payment_gateway,
    get_subscription_expiry_job,
)


def reset() -> None:
    """Drop every cached singleton so the next call rebuilds from current config."""
    for factory in _CACHED:
        factory.cache_clear()
