# assistec/services/vendas_service.py
"""
Vendas de produtos no balcão.

- registrar_venda: valida cabeçalho e itens, debita o estoque dos produtos
  (UPDATE condicional, como o ledger de peças) e grava venda + itens numa
  transação. O valor total é sempre recalculado a partir dos itens.
- atualizar_venda: edita só o cabeçalho; os itens não mudam depois de
  registrados. Cancelar devolve o estoque, reativar debita de novo.
- excluir_venda: devolve o estoque (se a venda não estava cancelada) e exclui.
"""

import calendar
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assistec import db
from assistec.models_sqla import (
    FORMAS_PAGAMENTO,
    STATUS_VENDA,
    Cliente,
    ItemVenda,
    Produto,
    Venda,
)
from assistec.services.diferenca_itens import campo
from assistec.services.erros import (
    ErroEstoque,
    ErroPersistencia,
    ErroValidacao,
    ProdutoNaoEncontrado,
    VendaNaoEncontrada,
)
from assistec.services.validacao_itens import como_inteiro

logger = logging.getLogger(__name__)


def somar_meses(data: date, meses: int) -> date:
    """``data`` + ``meses``, caindo no último dia do mês quando preciso (31/01 + 1 = 28/02)."""
    mes = data.month - 1 + meses
    ano = data.year + mes // 12
    mes = mes % 12 + 1
    dia = min(data.day, calendar.monthrange(ano, mes)[1])
    return date(ano, mes, dia)


def _texto(valor: Any) -> Optional[str]:
    if valor is None:
        return None
    valor = str(valor).strip()
    return valor or None


# =============================
# Validação
# =============================
def _validar_cabecalho(sess: Session, dados: Dict[str, Any]) -> List[str]:
    erros: List[str] = []

    cliente_id = dados.get("cliente_id")
    if cliente_id in (None, ""):
        erros.append("Cliente é obrigatório")
    elif como_inteiro(cliente_id) is None or sess.get(Cliente, como_inteiro(cliente_id)) is None:
        erros.append(f"Cliente {cliente_id} não encontrado")

    if not _texto(dados.get("vendedor_nome")):
        erros.append("Vendedor é obrigatório")

    forma = dados.get("forma_pagamento")
    if not forma:
        erros.append("Forma de pagamento é obrigatória")
    elif forma not in FORMAS_PAGAMENTO:
        erros.append(f"Forma de pagamento inválida: {forma}")

    status = dados.get("status") or "concluida"
    if status not in STATUS_VENDA:
        erros.append(f"Status inválido: {status}")
    return erros


def _validar_itens(
    sess: Session, itens: List[Any], conferir_estoque: bool
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Retorna (linhas normalizadas, erros). As linhas trazem o ``Produto`` carregado."""
    if not itens:
        return [], ["Adicione pelo menos um item"]

    erros: List[str] = []
    linhas: List[Dict[str, Any]] = []
    for n, item in enumerate(itens, start=1):
        produto_id = como_inteiro(campo(item, "produto_id"))
        if produto_id is None:
            erros.append(f"Item {n}: Produto é obrigatório")
            continue
        quantidade = como_inteiro(campo(item, "quantidade"))
        if quantidade is None or quantidade <= 0:
            erros.append(f"Item {n}: Quantidade deve ser um número inteiro maior que zero")
            continue
        preco = campo(item, "preco_unitario")
        if preco not in (None, ""):
            try:
                preco = float(preco)
            except (TypeError, ValueError):
                preco = -1.0
            if preco < 0:
                erros.append(f"Item {n}: Preço não pode ser negativo")
                continue
        else:
            preco = None
        linhas.append({"n": n, "produto_id": produto_id, "quantidade": quantidade, "preco": preco})

    ids = [linha["produto_id"] for linha in linhas]
    if len(ids) != len(set(ids)):
        erros.append("Não é possível adicionar o mesmo produto duas vezes")

    produtos = {}
    if ids:
        stmt = select(Produto).where(Produto.id.in_(sorted(set(ids)))).with_for_update()
        produtos = {p.id: p for p in sess.execute(stmt).scalars().all()}

    for linha in linhas:
        produto = produtos.get(linha["produto_id"])
        if produto is None:
            erros.append(f"Item {linha['n']}: Produto {linha['produto_id']} não encontrado")
            continue
        linha["produto"] = produto
        if linha["preco"] is None:
            linha["preco"] = produto.preco or 0.0
        if conferir_estoque and linha["quantidade"] > produto.estoque:
            erros.append(
                f"Item {linha['n']}: Estoque insuficiente (disponível: {produto.estoque})"
            )
    return linhas, erros


# =============================
# Estoque de produtos
# =============================
def ajustar_estoque_produto(sess: Session, produto_id: int, delta: int) -> None:
    """UPDATE condicional (``estoque + delta >= 0``). Sem commit."""
    resultado = sess.execute(
        update(Produto)
        .where(Produto.id == produto_id, Produto.estoque + delta >= 0)
        .values(estoque=Produto.estoque + delta, atualizado_em=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if resultado.rowcount == 0:
        linha = sess.execute(
            select(Produto.estoque, Produto.nome).where(Produto.id == produto_id)
        ).first()
        if linha is None:
            raise ProdutoNaoEncontrado(produto_id)
        raise ErroValidacao(
            [f"Estoque insuficiente para {linha.nome} (disponível: {linha.estoque})"]
        )
    logger.info(f"[Venda] Produto {produto_id}: estoque {delta:+d}")


def _movimentar_itens(sess: Session, venda: Venda, sinal: int) -> List[Dict[str, int]]:
    movidos = []
    for item in venda.itens:
        ajustar_estoque_produto(sess, item.produto_id, sinal * item.quantidade)
        movidos.append({"produto_id": item.produto_id, "quantidade": item.quantidade})
    return movidos


# =============================
# Operações
# =============================
def registrar_venda(
    dados: Dict[str, Any], itens: Iterable[Any], session: Optional[Session] = None
) -> Venda:
    sess = session or db.session
    itens = list(itens or [])
    status = dados.get("status") or "concluida"

    try:
        erros = _validar_cabecalho(sess, dados)
        linhas, erros_itens = _validar_itens(sess, itens, conferir_estoque=status == "concluida")
        erros += erros_itens
        if erros:
            raise ErroValidacao(erros)

        agora = datetime.utcnow()
        venda = Venda(
            cliente_id=como_inteiro(dados["cliente_id"]),
            vendedor_nome=_texto(dados.get("vendedor_nome")),
            forma_pagamento=dados.get("forma_pagamento"),
            observacoes=_texto(dados.get("observacoes")),
            status=status,
            data_venda=agora,
        )
        for linha in linhas:
            produto = linha["produto"]
            venda.itens.append(
                ItemVenda(
                    produto_id=produto.id,
                    quantidade=linha["quantidade"],
                    preco_unitario=linha["preco"],
                    garantia_ate=(
                        somar_meses(agora.date(), produto.garantia_meses)
                        if produto.garantia_meses
                        else None
                    ),
                )
            )
        venda.valor_total = round(sum(i.subtotal for i in venda.itens), 2)
        sess.add(venda)

        if status == "concluida":
            _movimentar_itens(sess, venda, -1)
        sess.commit()

    except ErroEstoque:
        sess.rollback()
        raise
    except SQLAlchemyError as e:
        sess.rollback()
        logger.error(f"[Venda] Erro de banco ao registrar venda: {e}")
        raise ErroPersistencia(f"Erro ao registrar venda: {e}", original=e) from e

    logger.info(f"[Venda] Venda {venda.id} registrada ({len(linhas)} item(ns), total {venda.valor_total}).")
    return venda


def atualizar_venda(
    venda_id: int, dados: Dict[str, Any], session: Optional[Session] = None
) -> Venda:
    """Edita o cabeçalho. Mudança de status movimenta o estoque dos itens."""
    sess = session or db.session
    venda = sess.get(Venda, venda_id)
    if venda is None:
        raise VendaNaoEncontrada(venda_id)

    erros = _validar_cabecalho(sess, dados)
    if erros:
        raise ErroValidacao(erros)

    status = dados.get("status") or "concluida"
    status_anterior = venda.status
    try:
        venda.cliente_id = como_inteiro(dados["cliente_id"])
        venda.vendedor_nome = _texto(dados.get("vendedor_nome"))
        venda.forma_pagamento = dados.get("forma_pagamento")
        venda.observacoes = _texto(dados.get("observacoes"))
        venda.status = status

        if status != status_anterior:
            _movimentar_itens(sess, venda, +1 if status == "cancelada" else -1)
        sess.commit()

    except ErroEstoque:
        sess.rollback()
        raise
    except SQLAlchemyError as e:
        sess.rollback()
        raise ErroPersistencia(f"Erro ao atualizar venda {venda_id}: {e}", original=e) from e

    logger.info(f"[Venda] Venda {venda_id} atualizada ({status_anterior} -> {status}).")
    return venda


def excluir_venda(venda_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    sess = session or db.session
    venda = sess.get(Venda, venda_id)
    if venda is None:
        raise VendaNaoEncontrada(venda_id)

    try:
        devolvidos = _movimentar_itens(sess, venda, +1) if venda.status == "concluida" else []
        sess.delete(venda)
        sess.commit()
    except ErroEstoque:
        sess.rollback()
        raise
    except SQLAlchemyError as e:
        sess.rollback()
        raise ErroPersistencia(f"Erro ao excluir venda {venda_id}: {e}", original=e) from e

    logger.info(f"[Venda] Venda {venda_id} excluída; {len(devolvidos)} item(ns) devolvido(s).")
    return {"venda_id": venda_id, "devolvidos": devolvidos}


def faturamento_vendas() -> float:
    total = (
        db.session.query(func.coalesce(func.sum(Venda.valor_total), 0.0))
        .filter(Venda.status == "concluida")
        .scalar()
    )
    return round(float(total or 0), 2)
