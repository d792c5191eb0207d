from assistec.models_sqla import MovimentacaoEstoque, OrdemServico

from conftest import estoque_de, item_avulso, item_estoque


def _payload_ordem(cliente, itens, **extra):
    dados = {
        "cliente_id": cliente.id,
        "dispositivo": "Celular X",
        "descricao_problema": "Não carrega",
        "itens": itens,
    }
    dados.update(extra)
    return dados


def test_ping(client):
    r = client.get("/api/ping")
    assert r.status_code == 200
    assert r.get_json() == {"ok": True, "service": "assistec"}


def test_rota_inexistente_responde_json(client):
    r = client.get("/api/nao-existe")
    assert r.status_code == 404
    assert r.get_json()["error"] == "nao_encontrado"


# ============================
# Peças
# ============================


def test_cadastrar_e_buscar_peca(client):
    r = client.post(
        "/api/pecas",
        json={"nome": "Bateria iPhone 11", "fabricante": "Apple", "preco_unitario": 120, "estoque": 4},
    )
    assert r.status_code == 201
    peca = r.get_json()["peca"]
    assert (peca["nome"], peca["estoque"]) == ("Bateria iPhone 11", 4)

    r = client.get("/api/pecas", query_string={"busca": "apple"})
    assert [p["id"] for p in r.get_json()["pecas"]] == [peca["id"]]

    r = client.get("/api/pecas/autocomplete", query_string={"termo": "bat"})
    assert r.get_json()["sugestoes"][0]["estoque"] == 4


def test_cadastrar_peca_invalida_lista_erros(client):
    r = client.post("/api/pecas", json={"nome": "", "preco_unitario": -1, "estoque": -2})
    assert r.status_code == 400
    corpo = r.get_json()
    assert corpo["error"] == "validacao"
    assert len(corpo["erros"]) == 3


def test_corpo_que_nao_e_json(client):
    r = client.post("/api/pecas", data="nome=x", content_type="text/plain")
    assert r.status_code == 400


def test_cadastrar_peca_registra_estoque_inicial(client):
    r = client.post("/api/pecas", json={"nome": "Flex Carga", "preco_unitario": 15, "estoque": 4})
    peca_id = r.get_json()["peca"]["id"]

    movimentos = MovimentacaoEstoque.query.filter_by(peca_id=peca_id).all()
    assert [(m.tipo, m.quantidade, m.estoque_resultante, m.referencia_tipo) for m in movimentos] == [
        ("entrada", 4, 4, "cadastro")
    ]

    # sem estoque inicial, sem movimentação
    client.post("/api/pecas", json={"nome": "Parafuso", "preco_unitario": 1})
    assert MovimentacaoEstoque.query.count() == 1


def test_editar_peca_nao_altera_estoque(client, nova_peca):
    peca = nova_peca(estoque=3)

    r = client.put(f"/api/pecas/{peca.id}", json={"preco_unitario": 99.9, "estoque": 3})
    assert r.status_code == 200
    assert r.get_json()["peca"]["preco_unitario"] == 99.9

    r = client.put(f"/api/pecas/{peca.id}", json={"estoque": 50})
    assert r.status_code == 400
    assert estoque_de(peca.id) == 3


def test_peca_inexistente_404(client, app):
    assert client.get("/api/pecas/999").status_code == 404
    assert client.delete("/api/pecas/999").status_code == 404


def test_movimentacao_manual_pela_api(client, nova_peca):
    peca = nova_peca(estoque=1)

    r = client.post(f"/api/pecas/{peca.id}/movimentacoes", json={"quantidade": 4, "tipo": "entrada"})
    assert r.status_code == 201
    assert r.get_json()["estoque"] == 5

    r = client.post(f"/api/pecas/{peca.id}/movimentacoes", json={"quantidade": 9, "tipo": "saida"})
    assert r.status_code == 409
    corpo = r.get_json()
    assert (corpo["error"], corpo["disponivel"], corpo["solicitado"]) == ("estoque_insuficiente", 5, 9)

    r = client.get(f"/api/pecas/{peca.id}/movimentacoes")
    movs = r.get_json()["movimentacoes"]
    assert len(movs) == 1
    assert movs[0]["estoque_resultante"] == 5


def test_excluir_peca_em_uso_e_recusado(client, nova_peca, nova_ordem):
    peca = nova_peca()
    nova_ordem(itens=[item_estoque(peca, 1)])

    r = client.delete(f"/api/pecas/{peca.id}")
    assert r.status_code == 409
    assert r.get_json()["error"] == "peca_em_uso"


def test_excluir_peca_de_ordem_cancelada(client, nova_peca, nova_ordem):
    peca = nova_peca()
    ordem = nova_ordem(itens=[item_estoque(peca, 1)], status="cancelada")
    client.post(f"/api/pecas/{peca.id}/movimentacoes", json={"quantidade": 1, "tipo": "entrada"})

    r = client.delete(f"/api/pecas/{peca.id}")
    assert r.status_code == 200
    assert MovimentacaoEstoque.query.count() == 0

    r = client.get(f"/api/ordens/{ordem.id}")
    assert r.get_json()["ordem"]["itens"][0]["peca_id"] is None


# ============================
# Ordens
# ============================


def test_criar_ordem_debita_estoque(client, cliente, nova_peca):
    peca = nova_peca(estoque=5, preco=40.0)

    r = client.post(
        "/api/ordens",
        json=_payload_ordem(cliente, [item_estoque(peca, 2), item_avulso(preco=10.0)], valor_manutencao=50),
    )

    assert r.status_code == 201
    ordem = r.get_json()["ordem"]
    assert ordem["status"] == "aberta"
    assert ordem["cliente_nome"] == "Maria Souza"
    assert len(ordem["itens"]) == 2
    assert ordem["total"] == 140.0
    assert estoque_de(peca.id) == 3


def test_criar_ordem_sem_estoque_responde_409(client, cliente, nova_peca):
    peca = nova_peca(estoque=2)

    r = client.post("/api/ordens", json=_payload_ordem(cliente, [item_estoque(peca, 5)]))

    assert r.status_code == 409
    corpo = r.get_json()
    assert corpo["peca_id"] == peca.id
    assert (corpo["disponivel"], corpo["solicitado"]) == (2, 5)
    assert OrdemServico.query.count() == 0
    assert estoque_de(peca.id) == 2


def test_criar_ordem_com_itens_invalidos_responde_400(client, cliente, nova_peca):
    peca = nova_peca(estoque=2)
    itens = [dict(item_estoque(peca, 1), quantidade=0), item_avulso(nome="")]

    r = client.post("/api/ordens", json=_payload_ordem(cliente, itens))

    assert r.status_code == 400
    assert r.get_json()["erros"] == [
        "Item 1: Quantidade deve ser maior que zero",
        "Item 2: Nome do item é obrigatório",
    ]


def test_itens_precisam_ser_lista(client, cliente):
    r = client.post("/api/ordens", json=_payload_ordem(cliente, "tela"))
    assert r.status_code == 400


def test_criar_ordem_com_quantidade_fracionada_responde_400(client, cliente, nova_peca):
    peca = nova_peca(estoque=5)

    for quantidade in (2.5, "2.5"):
        r = client.post("/api/ordens", json=_payload_ordem(cliente, [item_estoque(peca, quantidade)]))
        assert r.status_code == 400
        assert r.get_json()["erros"] == ["Item 1: Quantidade deve ser um número inteiro"]

    assert OrdemServico.query.count() == 0
    assert estoque_de(peca.id) == 5


def test_criar_ordem_com_peca_id_texto_responde_400(client, cliente):
    r = client.post("/api/ordens", json=_payload_ordem(cliente, [item_avulso(peca_id="abc")]))

    assert r.status_code == 400
    assert r.get_json()["erros"] == ["Item 1: Peça inválida: abc"]
    assert OrdemServico.query.count() == 0


def test_atualizar_ordem_ajusta_diferenca(client, cliente, nova_peca):
    peca = nova_peca(estoque=5)
    ordem_id = client.post(
        "/api/ordens", json=_payload_ordem(cliente, [item_estoque(peca, 2)])
    ).get_json()["ordem"]["id"]

    r = client.put(f"/api/ordens/{ordem_id}", json=_payload_ordem(cliente, [item_estoque(peca, 1)]))
    assert r.status_code == 200
    assert estoque_de(peca.id) == 4

    r = client.put(
        f"/api/ordens/{ordem_id}",
        json=_payload_ordem(cliente, [item_estoque(peca, 1)], status="concluida"),
    )
    assert r.get_json()["ordem"]["data_conclusao"] is not None


def test_atualizar_ordem_inexistente(client, cliente):
    r = client.put("/api/ordens/999", json=_payload_ordem(cliente, []))
    assert r.status_code == 404
    assert r.get_json()["error"] == "ordem_nao_encontrada"


def test_listar_ordens_com_filtro(client, cliente, nova_ordem):
    nova_ordem()
    nova_ordem(status="concluida")

    r = client.get("/api/ordens", query_string={"status": "concluida"})
    ordens = r.get_json()["ordens"]
    assert [o["status"] for o in ordens] == ["concluida"]
    assert "itens" not in ordens[0]

    assert client.get("/api/ordens", query_string={"status": "xyz"}).status_code == 400


def test_excluir_ordem_devolve_estoque(client, nova_peca, nova_ordem):
    peca = nova_peca(estoque=1)
    ordem = nova_ordem(itens=[item_estoque(peca, 4)])

    r = client.delete(f"/api/ordens/{ordem.id}")

    assert r.status_code == 200
    assert r.get_json()["devolvidas"] == [{"peca_id": peca.id, "quantidade": 4}]
    assert estoque_de(peca.id) == 5
    assert client.get(f"/api/ordens/{ordem.id}").status_code == 404


# ============================
# Clientes / técnicos
# ============================


def test_crud_cliente(client):
    r = client.post("/api/clientes", json={"nome": "José", "telefone": " 1133334444 "})
    assert r.status_code == 201
    cliente = r.get_json()["cliente"]
    assert cliente["telefone"] == "1133334444"

    r = client.put(f"/api/clientes/{cliente['id']}", json={"email": "jose@exemplo.com"})
    assert r.get_json()["cliente"]["email"] == "jose@exemplo.com"

    assert client.post("/api/clientes", json={"nome": " "}).status_code == 400
    assert client.delete(f"/api/clientes/{cliente['id']}").status_code == 200
    assert client.get("/api/clientes").get_json()["clientes"] == []


def test_cliente_com_ordens_nao_e_excluido(client, cliente, nova_ordem):
    nova_ordem()
    r = client.delete(f"/api/clientes/{cliente.id}")
    assert r.status_code == 409
    assert r.get_json()["error"] == "cliente_com_ordens"


def test_excluir_tecnico_libera_ordens(client, cliente, tecnico, nova_ordem):
    ordem = nova_ordem()
    client.put(
        f"/api/ordens/{ordem.id}",
        json=_payload_ordem(cliente, [], tecnico_id=tecnico.id),
    )

    r = client.delete(f"/api/tecnicos/{tecnico.id}")
    assert r.status_code == 200

    r = client.get(f"/api/ordens/{ordem.id}")
    assert r.get_json()["ordem"]["tecnico_id"] is None
