from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from camara_ai.main import app
from camara_ai.core import models
from camara_ai.core.database import Base
from camara_ai.api.endpoints.assistant import get_assistant
from camara_ai.assistant.errors import UpstreamModelError
from camara_ai.assistant.llm import LanguageModel, ModelReply, ToolCallRequest
from camara_ai.assistant.service import AssistantService
from camara_ai.assistant.sessions import InMemorySessionStore

CAR_RENTAL = "LOCAÇÃO OU FRETAMENTO DE VEÍCULOS AUTOMOTORES"
FUEL = "COMBUSTÍVEIS E LUBRIFICANTES."
FLIGHTS = "PASSAGEM AÉREA - SIGEPA"
PHONE = "TELEFONIA"
PUBLICITY = "DIVULGAÇÃO DA ATIVIDADE PARLAMENTAR."
LODGING = "HOSPEDAGEM ,EXCETO DO PARLAMENTAR NO DISTRITO FEDERAL."

# external_id, name, party, state, legislature
DEPUTIES = [
    (100, "Ana Silva", "PT", "SP", 57),
    (101, "Bruno Costa", "PT", "SP", 57),
    (102, "Carla Souza", "PT", "MG", 57),  # no expenses
    (103, "Diego Lima", "PL", "RJ", 57),
    (104, "Eva Rocha", "PL", "SP", 57),
    (105, "Fabio Nunes", "MDB", "MG", 57),  # no expenses
    (106, "Gabi Alves", "NOVO", "RJ", 56),
    (107, "Hugo Reis", "PSD", "BA", 57),
    (108, "Iris Melo", "PSB", "PE", 57),
    (109, "João Dias", "REPUBLICANOS", "SP", 57),
]

# deputy, year, month, day, type, supplier, net value
EXPENSES = [
    (100, 2024, 1, 10, FUEL, "Posto Central", "1000.00"),
    (100, 2024, 1, 15, CAR_RENTAL, "Locadora Rota", "3000.00"),
    (100, 2024, 3, 5, FLIGHTS, "Cia Aérea Azul", "2000.00"),
    (100, 2023, 12, 20, FUEL, "Posto Central", "500.00"),
    (101, 2024, 2, 10, PHONE, "Telefônica", "400.00"),
    (101, 2024, 2, 10, FUEL, "Posto Central", "600.00"),
    (103, 2024, 1, 15, CAR_RENTAL, "Locadora Rota", "5000.00"),
    (103, 2024, 5, 2, PUBLICITY, "Gráfica Norte", "7000.00"),
    (104, 2024, 6, 15, LODGING, "Hotel Plaza", "800.00"),
    (106, 2024, 1, 15, PHONE, "Telefônica", "100.00"),
    (107, 2024, 4, 1, PHONE, "Telefônica", "300.00"),
    (108, 2024, 7, 1, PHONE, "Telefônica", "200.00"),
    (109, 2024, 8, 1, FUEL, "Posto Central", "50.00"),
]

SUPPLIER_TAX_IDS = {
    supplier: f"{number:014d}"
    for number, supplier in enumerate(sorted({expense[5] for expense in EXPENSES}))
}


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path):
    """Fresh SQLite database per test, seeded with DEPUTIES and EXPENSES."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        for external_id, name, party, state, legislature in DEPUTIES:
            session.add(
                models.Deputy(
                    external_id=external_id,
                    name=name,
                    party_code=party,
                    state_code=state,
                    legislature_id=legislature,
                )
            )
        await session.flush()
        for number, (deputy_id, year, month, day, kind, supplier, value) in enumerate(EXPENSES):
            session.add(
                models.Expense(
                    deputy_id=deputy_id,
                    year=year,
                    month=month,
                    document_date=date(year, month, day),
                    expense_type=kind,
                    supplier_name=supplier,
                    supplier_tax_id=SUPPLIER_TAX_IDS[supplier],
                    document_code=number,
                    document_number=f"NF-{number}",
                    document_value=Decimal(value),
                    discount_value=Decimal("0"),
                    net_value=Decimal(value),
                )
            )
        await session.commit()

    yield factory
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


class ScriptedModel(LanguageModel):
    """
    Plays back a list of replies, one per call, and records what it was sent.

    A reply may be a callable taking the history, for replies that depend on
    the tool results.
    """

    def __init__(self, replies: List[Any]):
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def converse(self, system_prompt, history, tools):
        self.calls.append(
            {"system_prompt": system_prompt, "history": list(history), "tools": tools}
        )
        if not self.replies:
            raise UpstreamModelError("script exhausted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(history)
        return reply


def final(text: str) -> ModelReply:
    return ModelReply(content=text)


def call(name: str, arguments: Dict[str, Any], call_id: str = "call_1") -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, arguments=arguments)


def calls(*requests: ToolCallRequest, content=None) -> ModelReply:
    return ModelReply(content=content, tool_calls=list(requests))


@pytest_asyncio.fixture(scope="function")
async def store():
    return InMemorySessionStore(max_turns=20, max_sessions=100, ttl_seconds=3600)


def make_service(model, session_factory, store, **kwargs) -> AssistantService:
    return AssistantService(
        model=model,
        session_factory=session_factory,
        store=store,
        query_timeout=kwargs.pop("query_timeout", 5),
        model_timeout=kwargs.pop("model_timeout", 5),
        **kwargs,
    )


# Client wired to a scripted model; tests put replies in client.model.replies
@pytest_asyncio.fixture(scope="function")
async def client(session_factory, store):
    model = ScriptedModel([])
    service = make_service(model, session_factory, store)
    app.dependency_overrides[get_assistant] = lambda: service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        ac.model = model
        ac.service = service
        yield ac

    app.dependency_overrides.clear()
