"""
Shared fixtures: a throwaway SQLite directory and an in-memory stand-in
for the spreadsheet HTTP client.
"""

from __future__ import annotations

from typing import Dict, Optional

import pytest

from Palm_Task.config.config_store import SyncConfig
from Palm_Task.data.repositories.collections_repo import CollectionStore
from Palm_Task.services.sync_service import SyncService

TASKS_CSV = (
    "PRAZO,SETOR,PDV,NOME,CLUSTER,COMPRADOS VS FALTANTES,FALTANTE,DESCRICAO,HASH,OPERACAO,COINS,CATEGORIA,ASSUNTO,SCORE\n"
    'Hoje,305,123.45 ,Bar do Zé,Centro,3/10,7,"Levar ""combo"", conferir",h1,Venda,120,BEER,Mix,Sim\n'
    "Amanhã,305,999,Mercado Sol,Sul,,0,,h2,Venda,40,NAB,Ativação,Não\n"
    "Hoje,410,555,Padaria Lua,Norte,1/4,3,,h3,Visita,99,BEER,Mix,Não\n"
)

NON_BUYERS_CSV = (
    "SETOR,PDV,FANTASIA,ULTIMA VISITA\n"
    "305,123.45,Bar do Zé,01/10/2026\n"
    "305,,Sem codigo,\n"
)

SKU_MAP_CSV = (
    "HASH,SKUS\n"
    'h1,"Coffee, Sugar"\n'
    "h3,Café Pilão 500g\n"
)

IMAGES_CSV = (
    "ID,NOME,URL\n"
    "p1,Coffee,https://img.example/coffee.png\n"
    "p2,Sugar,https://img.example/sugar.png\n"
    ",Café Pilão Tradicional 500g,https://img.example/pilao.png\n"
)

CONSULTANTS_CSV = (
    "ID,SETOR,SENHA,IMAGEM,NOME\n"
    "c1,305,1234,https://img.example/ana.jpg,Ana Souza\n"
    "c2,410,,SEM FOTO,Bruno Lima\n"
    "c3,520,,https://img.example/broken.jpg,Carla Dias\n"
)

FEEDS = {
    "tasks": TASKS_CSV,
    "non_buyers": NON_BUYERS_CSV,
    "sku_map": SKU_MAP_CSV,
    "product_images": IMAGES_CSV,
    "consultants": CONSULTANTS_CSV,
}


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def close(self) -> None:
        self.closed = True


class FakeSheetsClient:
    """
    Same surface as SheetsClient. `feeds` maps feed name to CSV text, a
    FakeResponse, or an exception instance to raise for that feed.
    """

    def __init__(
        self,
        feeds: Optional[Dict[str, object]] = None,
        reachable: bool = True,
        avatars: Optional[Dict[str, object]] = None,
    ) -> None:
        self.feeds = dict(FEEDS if feeds is None else feeds)
        self.reachable = reachable
        self.avatars = avatars if avatars is not None else {
            "https://img.example/ana.jpg": "data:image/jpeg;base64,QUJD",
        }
        self.fetch_calls = 0

    def is_reachable(self) -> bool:
        return self.reachable

    def fetch_feeds(self):
        self.fetch_calls += 1
        out = {}
        for name, value in self.feeds.items():
            if isinstance(value, (Exception, FakeResponse)):
                out[name] = value
            else:
                out[name] = FakeResponse(str(value))
        return out

    def read_bodies(self, responses):
        return {name: resp.text for name, resp in responses.items()}

    def fetch_avatars(self, urls):
        out = {}
        for key, url in urls.items():
            value = self.avatars.get(url)
            out[key] = value if value is not None else ConnectionError(f"CORS blocked {url}")
        return out


@pytest.fixture
def db_dir(tmp_path):
    return tmp_path / "db"


@pytest.fixture
def store(db_dir):
    return CollectionStore(db_dir)


@pytest.fixture
def fake_client():
    return FakeSheetsClient()


@pytest.fixture
def service(db_dir, fake_client):
    return SyncService(client=fake_client, base_dir=db_dir, config=SyncConfig())
