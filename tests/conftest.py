"""Fixtures de teste.

Notas:
 - Cada teste recebe uma app nova com um banco SQLite em arquivo temporário
   (tmp_path). Arquivo em vez de :memory: para que sessões diferentes
   (teste x request do test client) usem conexões independentes.
 - As fixtures de dados fazem commit; leia o estoque com ``estoque_de``,
   que descarta o cache da sessão antes de consultar.
"""

import pytest

from assistec import create_app, db
from assistec.models_sqla import Cliente, ItemOrdem, OrdemServico, Peca, Produto, Tecnico


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'teste.db'}",
        }
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def cliente(app):
    c = Cliente(nome="Maria Souza", telefone="11999990000")
    db.session.add(c)
    db.session.commit()
    return c


@pytest.fixture
def tecnico(app):
    t = Tecnico(nome="João Técnico")
    db.session.add(t)
    db.session.commit()
    return t


@pytest.fixture
def nova_peca(app):
    def _nova_peca(nome="Tela LCD", estoque=10, preco=50.0):
        p = Peca(nome=nome, estoque=estoque, preco_unitario=preco)
        db.session.add(p)
        db.session.commit()
        return p

    return _nova_peca


@pytest.fixture
def nova_ordem(app, cliente):
    """Cria uma ordem direto no banco (sem passar pelo ledger)."""

    def _nova_ordem(itens=(), status="aberta"):
        ordem = OrdemServico(
            cliente_id=cliente.id,
            dispositivo="Notebook",
            descricao_problema="Não liga",
            status=status,
        )
        ordem.itens = [ItemOrdem(**i) for i in itens]
        db.session.add(ordem)
        db.session.commit()
        return ordem

    return _nova_ordem


@pytest.fixture
def novo_produto(app):
    def _novo_produto(nome="Capinha iPhone 13", estoque=5, preco=40.0, garantia_meses=0):
        p = Produto(nome=nome, estoque=estoque, preco=preco, garantia_meses=garantia_meses)
        db.session.add(p)
        db.session.commit()
        return p

    return _novo_produto


def estoque_de(peca_id):
    db.session.expire_all()
    return db.session.get(Peca, peca_id).estoque


def item_estoque(peca, quantidade, preco=None):
    return {
        "peca_id": peca.id,
        "nome_item": peca.nome,
        "quantidade": quantidade,
        "preco_unitario": peca.preco_unitario if preco is None else preco,
        "is_from_estoque": True,
    }


def item_avulso(nome="Mão de obra extra", quantidade=1, preco=30.0, peca_id=None):
    return {
        "peca_id": peca_id,
        "nome_item": nome,
        "quantidade": quantidade,
        "preco_unitario": preco,
        "is_from_estoque": False,
    }
