import warnings

import pytest
from sqlalchemy.exc import SAWarning

from assistec import db
from assistec.models_sqla import ItemOrdem, OrdemServico
from assistec.services import ordem_service
from assistec.services.erros import (
    ErroPersistencia,
    ErroValidacao,
    EstoqueInsuficiente,
    OrdemNaoEncontrada,
    PecaNaoEncontrada,
)
from assistec.services.estoque_service import ajustar_estoque
from assistec.services.ordem_service import (
    reconciliar_ao_excluir,
    reconciliar_ao_salvar,
    salvar_ordem,
)

from conftest import estoque_de, item_avulso, item_estoque


@pytest.fixture
def espiao_ledger(monkeypatch):
    """Conta as chamadas ao ledger feitas pela reconciliação."""
    chamadas = []

    def _espiao(peca_id, delta, **kwargs):
        chamadas.append((peca_id, delta))
        return ajustar_estoque(peca_id, delta, **kwargs)

    monkeypatch.setattr(ordem_service, "ajustar_estoque", _espiao)
    return chamadas


def _dados_ordem(cliente, **extra):
    dados = {
        "cliente_id": cliente.id,
        "dispositivo": "Celular X",
        "descricao_problema": "Tela quebrada",
    }
    dados.update(extra)
    return dados


# ============================
# reconciliar_ao_salvar
# ============================


def test_salvar_itens_novos_debita_estoque(nova_peca, nova_ordem):
    peca = nova_peca(estoque=10)
    ordem = nova_ordem()

    ajustes = reconciliar_ao_salvar(ordem.id, [], [item_estoque(peca, 3), item_avulso()])

    assert [(a.peca_id, a.delta) for a in ajustes] == [(peca.id, -3)]
    assert estoque_de(peca.id) == 7
    assert len(db.session.get(OrdemServico, ordem.id).itens) == 2


def test_estoque_insuficiente_nao_chama_ledger(nova_peca, nova_ordem, espiao_ledger):
    peca = nova_peca(estoque=2)
    ordem = nova_ordem()

    with pytest.raises(EstoqueInsuficiente) as exc:
        reconciliar_ao_salvar(ordem.id, [], [item_estoque(peca, 5)])

    assert espiao_ledger == []
    assert (exc.value.disponivel, exc.value.solicitado) == (2, 5)
    assert estoque_de(peca.id) == 2
    assert ItemOrdem.query.count() == 0


def test_varias_pecas_sem_estoque_viram_erro_de_validacao(nova_peca, nova_ordem, espiao_ledger):
    a = nova_peca(nome="A", estoque=1)
    b = nova_peca(nome="B", estoque=0)
    ordem = nova_ordem()

    with pytest.raises(ErroValidacao) as exc:
        reconciliar_ao_salvar(ordem.id, [], [item_estoque(a, 2), item_estoque(b, 1)])

    assert len(exc.value.erros) == 2
    assert espiao_ledger == []


def test_erros_estruturais_abortam_antes_do_ledger(nova_peca, nova_ordem, espiao_ledger):
    peca = nova_peca(estoque=10)
    ordem = nova_ordem()
    itens = [
        dict(item_estoque(peca, 1), nome_item=""),
        dict(item_estoque(peca, 1), quantidade=0),
        item_avulso(preco=-1),
    ]

    with pytest.raises(ErroValidacao) as exc:
        reconciliar_ao_salvar(ordem.id, [], itens)

    assert len(exc.value.erros) == 3
    assert espiao_ledger == []
    assert estoque_de(peca.id) == 10


def test_edicao_com_aumento_usa_so_a_diferenca(nova_peca, nova_ordem):
    peca = nova_peca(estoque=2)
    ordem = nova_ordem(itens=[item_estoque(peca, 3)])

    # estoque 2 não cobre 5 unidades, mas cobre o aumento de 2
    reconciliar_ao_salvar(ordem.id, ordem.itens, [item_estoque(peca, 5)])

    assert estoque_de(peca.id) == 0
    assert db.session.get(OrdemServico, ordem.id).itens[0].quantidade == 5


def test_edicao_removendo_item_devolve(nova_peca, nova_ordem):
    a = nova_peca(nome="A", estoque=0)
    b = nova_peca(nome="B", estoque=5)
    ordem = nova_ordem(itens=[item_estoque(a, 2), item_estoque(b, 1)])

    reconciliar_ao_salvar(ordem.id, ordem.itens, [item_estoque(b, 4)])

    assert estoque_de(a.id) == 2
    assert estoque_de(b.id) == 2


def test_falha_no_meio_do_lote_desfaz_tudo(nova_peca, nova_ordem, monkeypatch):
    a = nova_peca(nome="A", estoque=10)
    b = nova_peca(nome="B", estoque=10)
    ordem = nova_ordem()

    def _ledger_instavel(peca_id, delta, **kwargs):
        if peca_id == b.id:
            raise ErroPersistencia("conexão perdida")
        return ajustar_estoque(peca_id, delta, **kwargs)

    monkeypatch.setattr(ordem_service, "ajustar_estoque", _ledger_instavel)

    with pytest.raises(ErroPersistencia):
        reconciliar_ao_salvar(ordem.id, [], [item_estoque(a, 3), item_estoque(b, 3)])

    assert estoque_de(a.id) == 10
    assert estoque_de(b.id) == 10
    assert ItemOrdem.query.count() == 0


def test_peca_inexistente_e_fatal_ao_salvar(nova_ordem):
    ordem = nova_ordem()
    item = {"peca_id": 999, "nome_item": "Fantasma", "quantidade": 1,
            "preco_unitario": 1.0, "is_from_estoque": True}

    with pytest.raises(PecaNaoEncontrada):
        reconciliar_ao_salvar(ordem.id, [], [item])


def test_item_avulso_com_peca_id_antigo_nao_mexe_no_estoque(nova_peca, nova_ordem, espiao_ledger):
    peca = nova_peca(estoque=1)
    ordem = nova_ordem()

    reconciliar_ao_salvar(ordem.id, [], [item_avulso(quantidade=50, peca_id=peca.id)])

    assert espiao_ledger == []
    assert estoque_de(peca.id) == 1


def test_quantidade_fracionada_nao_chega_ao_ledger(nova_peca, nova_ordem, espiao_ledger):
    peca = nova_peca(estoque=10)
    ordem = nova_ordem()

    for quantidade in (2.5, "2.5"):
        with pytest.raises(ErroValidacao) as exc:
            reconciliar_ao_salvar(ordem.id, [], [item_estoque(peca, quantidade)])
        assert exc.value.erros == ["Item 1: Quantidade deve ser um número inteiro"]

    assert espiao_ledger == []
    assert estoque_de(peca.id) == 10
    assert ItemOrdem.query.count() == 0


def test_item_avulso_com_peca_id_texto_e_erro_de_validacao(nova_ordem, espiao_ledger):
    ordem = nova_ordem()

    with pytest.raises(ErroValidacao) as exc:
        reconciliar_ao_salvar(ordem.id, [], [item_avulso(peca_id="abc")])

    assert exc.value.erros == ["Item 1: Peça inválida: abc"]
    assert espiao_ledger == []


# ============================
# reconciliar_ao_excluir
# ============================


def test_excluir_devolve_estoque(nova_peca, nova_ordem):
    peca = nova_peca(estoque=1)
    ordem = nova_ordem(itens=[item_estoque(peca, 4), item_avulso()])
    ordem_id = ordem.id

    resumo = reconciliar_ao_excluir(ordem_id)

    assert estoque_de(peca.id) == 5
    assert resumo["devolvidas"] == [{"peca_id": peca.id, "quantidade": 4}]
    assert db.session.get(OrdemServico, ordem_id) is None
    assert ItemOrdem.query.count() == 0


def test_excluir_com_peca_apagada_segue_em_frente(nova_peca, nova_ordem):
    peca = nova_peca(estoque=0)
    ordem = nova_ordem(
        itens=[
            {"peca_id": 999, "nome_item": "Peça apagada", "quantidade": 1,
             "preco_unitario": 5.0, "is_from_estoque": True},
            item_estoque(peca, 2),
        ]
    )
    ordem_id = ordem.id

    resumo = reconciliar_ao_excluir(ordem_id)

    assert [i["peca_id"] for i in resumo["ignoradas"]] == [999]
    assert estoque_de(peca.id) == 2
    assert db.session.get(OrdemServico, ordem_id) is None


def test_excluir_nao_apaga_itens_duas_vezes(nova_peca, nova_ordem):
    peca = nova_peca(estoque=0)
    ordem = nova_ordem(itens=[item_estoque(peca, 1), item_avulso()])

    with warnings.catch_warnings():
        warnings.simplefilter("error", SAWarning)
        reconciliar_ao_excluir(ordem.id)

    assert ItemOrdem.query.count() == 0


def test_excluir_ordem_cancelada_nao_devolve_de_novo(nova_peca, nova_ordem):
    peca = nova_peca(estoque=3)
    ordem = nova_ordem(itens=[item_estoque(peca, 2)], status="cancelada")

    resumo = reconciliar_ao_excluir(ordem.id)

    assert resumo["devolvidas"] == []
    assert estoque_de(peca.id) == 3


def test_excluir_ordem_inexistente(app):
    with pytest.raises(OrdemNaoEncontrada):
        reconciliar_ao_excluir(12345)


# ============================
# salvar_ordem (cabeçalho + itens)
# ============================


def test_salvar_ordem_nova(cliente, tecnico, nova_peca):
    peca = nova_peca(estoque=4, preco=100.0)

    ordem = salvar_ordem(
        _dados_ordem(cliente, tecnico_id=tecnico.id, valor_manutencao=80),
        [item_estoque(peca, 2), item_avulso(preco=15.0)],
    )

    assert ordem.id is not None
    assert ordem.status == "aberta"
    assert ordem.total_itens == 215.0
    assert ordem.total == 295.0
    assert estoque_de(peca.id) == 2


def test_salvar_ordem_cabecalho_invalido_lista_tudo(app, nova_peca):
    peca = nova_peca(estoque=4)

    with pytest.raises(ErroValidacao) as exc:
        salvar_ordem(
            {"cliente_id": None, "dispositivo": " ", "status": "perdida",
             "valor_manutencao": -3},
            [dict(item_estoque(peca, 1), nome_item="")],
        )

    assert len(exc.value.erros) == 6
    assert OrdemServico.query.count() == 0
    assert estoque_de(peca.id) == 4


def test_cancelar_devolve_e_reabrir_debita(cliente, nova_peca):
    peca = nova_peca(estoque=5)
    ordem = salvar_ordem(_dados_ordem(cliente), [item_estoque(peca, 3)])
    assert estoque_de(peca.id) == 2

    salvar_ordem(_dados_ordem(cliente, status="cancelada"), [item_estoque(peca, 3)], ordem.id)
    assert estoque_de(peca.id) == 5

    # cancelada: editar itens não mexe no estoque
    salvar_ordem(_dados_ordem(cliente, status="cancelada"), [item_estoque(peca, 4)], ordem.id)
    assert estoque_de(peca.id) == 5

    salvar_ordem(_dados_ordem(cliente, status="em_andamento"), [item_estoque(peca, 4)], ordem.id)
    assert estoque_de(peca.id) == 1


def test_concluir_registra_data_conclusao(cliente):
    ordem = salvar_ordem(_dados_ordem(cliente), [])
    assert ordem.data_conclusao is None

    ordem = salvar_ordem(_dados_ordem(cliente, status="concluida"), [], ordem.id)
    primeira = ordem.data_conclusao
    assert primeira is not None

    ordem = salvar_ordem(_dados_ordem(cliente, status="concluida", diagnostico="ok"), [], ordem.id)
    assert ordem.data_conclusao == primeira


def test_invariante_estoque_ao_longo_de_varias_operacoes(cliente, nova_peca):
    base = 20
    peca = nova_peca(estoque=base)

    def ativo_total():
        db.session.expire_all()
        return sum(
            i.quantidade
            for o in OrdemServico.query.all()
            if o.status != "cancelada"
            for i in o.itens
            if i.is_from_estoque and i.peca_id == peca.id
        )

    o1 = salvar_ordem(_dados_ordem(cliente), [item_estoque(peca, 4)])
    o2 = salvar_ordem(_dados_ordem(cliente), [item_estoque(peca, 6), item_avulso()])
    salvar_ordem(_dados_ordem(cliente), [item_estoque(peca, 2)], o1.id)
    salvar_ordem(_dados_ordem(cliente, status="cancelada"), [item_estoque(peca, 6)], o2.id)
    o3 = salvar_ordem(_dados_ordem(cliente), [item_estoque(peca, 5)])
    with pytest.raises(EstoqueInsuficiente):
        salvar_ordem(_dados_ordem(cliente), [item_estoque(peca, 50)], o3.id)
    reconciliar_ao_excluir(o1.id)
    reconciliar_ao_excluir(o2.id)

    assert estoque_de(peca.id) == base - ativo_total()
    assert estoque_de(peca.id) == 15
