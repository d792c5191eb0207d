# assistec/services/estoque_service.py
"""
Ledger de estoque das peças.

``ajustar_estoque`` é o único caminho que altera ``Peca.estoque``:
- delta > 0 devolve ao estoque, delta < 0 debita;
- a checagem de saldo e a escrita são um único UPDATE condicional
  (``estoque + delta >= 0`` avaliado no banco), então dois ajustes
  concorrentes da mesma peça não se sobrescrevem;
- NÃO faz commit: roda dentro da transação de quem chama.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from assistec import db
from assistec.models_sqla import ItemOrdem, MovimentacaoEstoque, OrdemServico, Peca
from assistec.services.erros import (
    ErroPersistencia,
    ErroValidacao,
    EstoqueInsuficiente,
    PecaNaoEncontrada,
)
from assistec.services.eventos import enfileirar_peca_alterada
from assistec.services.validacao_itens import como_inteiro

logger = logging.getLogger(__name__)

TIPOS_MOVIMENTACAO = ("entrada", "saida")


def _erro_persistencia(acao: str, e: SQLAlchemyError) -> ErroPersistencia:
    tipo = "restricao" if isinstance(e, IntegrityError) else "transporte"
    return ErroPersistencia(f"Erro ao {acao}: {e}", tipo=tipo, original=e)


def obter_pecas(
    peca_ids: Iterable[int],
    session: Optional[Session] = None,
    travar: bool = False,
) -> Dict[int, Peca]:
    """Carrega as peças pedidas, indexadas por id (ausentes ficam de fora).

    Com ``travar=True`` as linhas são lidas com SELECT ... FOR UPDATE.
    """
    ids = sorted({int(i) for i in peca_ids if i is not None})
    if not ids:
        return {}

    sess = session or db.session
    stmt = select(Peca).where(Peca.id.in_(ids)).order_by(Peca.id)
    if travar:
        stmt = stmt.with_for_update()
    try:
        pecas = sess.execute(stmt).scalars().all()
    except SQLAlchemyError as e:
        raise _erro_persistencia("buscar peças", e) from e
    return {p.id: p for p in pecas}


def ajustar_estoque(
    peca_id: int,
    delta: int,
    *,
    session: Optional[Session] = None,
    referencia_tipo: Optional[str] = None,
    referencia_id: Optional[int] = None,
    observacao: Optional[str] = None,
    chave: Optional[str] = None,
) -> int:
    """
    Aplica ``delta`` ao estoque da peça e retorna o novo saldo.

    Erros:
      - PecaNaoEncontrada: peça inexistente
      - EstoqueInsuficiente: saldo + delta ficaria negativo
      - ErroPersistencia: falha de leitura/escrita no banco

    Se ``chave`` já foi registrada em uma movimentação anterior, o ajuste
    não é reaplicado e o saldo atual é retornado.
    """
    sess = session or db.session
    delta = int(delta)

    try:
        if chave:
            ja_aplicada = sess.execute(
                select(MovimentacaoEstoque.id).where(MovimentacaoEstoque.chave == chave)
            ).first()
            if ja_aplicada:
                logger.info(f"[Estoque] Ajuste '{chave}' já aplicado; ignorando.")
                return _saldo_atual(sess, peca_id)

        if delta == 0:
            return _saldo_atual(sess, peca_id)

        resultado = sess.execute(
            update(Peca)
            .where(Peca.id == peca_id, Peca.estoque + delta >= 0)
            .values(estoque=Peca.estoque + delta, atualizado_em=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )

        if resultado.rowcount == 0:
            linha = sess.execute(
                select(Peca.estoque, Peca.nome).where(Peca.id == peca_id)
            ).first()
            if linha is None:
                raise PecaNaoEncontrada(peca_id)
            logger.warning(
                f"[Estoque] Débito recusado para peça {peca_id}: "
                f"estoque {linha.estoque}, débito {abs(delta)}"
            )
            raise EstoqueInsuficiente(peca_id, linha.estoque, abs(delta), nome=linha.nome)

        # recarrega a instância da sessão (se houver) com o saldo gravado
        novo_estoque = sess.get(Peca, peca_id, populate_existing=True).estoque

        sess.add(
            MovimentacaoEstoque(
                peca_id=peca_id,
                tipo="entrada" if delta > 0 else "saida",
                quantidade=abs(delta),
                estoque_resultante=novo_estoque,
                referencia_tipo=referencia_tipo,
                referencia_id=referencia_id,
                observacao=observacao,
                chave=chave,
            )
        )
        sess.flush()

    except SQLAlchemyError as e:
        logger.error(f"[Estoque] Erro ao ajustar estoque da peça {peca_id}: {e}")
        raise _erro_persistencia(f"ajustar estoque da peça {peca_id}", e) from e

    enfileirar_peca_alterada(sess, peca_id, novo_estoque)
    logger.info(
        f"[Estoque] Peça {peca_id}: {novo_estoque - delta} -> {novo_estoque} (delta {delta:+d})"
    )
    return novo_estoque


def registrar_estoque_inicial(peca: Peca, session: Optional[Session] = None) -> None:
    """Movimentação de entrada do saldo com que a peça foi cadastrada. Sem commit.

    A peça já precisa ter ``id`` (faça flush antes).
    """
    if not peca.estoque:
        return
    sess = session or db.session
    sess.add(
        MovimentacaoEstoque(
            peca_id=peca.id,
            tipo="entrada",
            quantidade=peca.estoque,
            estoque_resultante=peca.estoque,
            referencia_tipo="cadastro",
            observacao="Estoque inicial",
        )
    )


def _saldo_atual(sess: Session, peca_id: int) -> int:
    estoque = sess.execute(
        select(Peca.estoque).where(Peca.id == peca_id)
    ).scalar_one_or_none()
    if estoque is None:
        raise PecaNaoEncontrada(peca_id)
    return estoque


# =============================
# Movimentação manual (entrada/saída avulsa)
# =============================
def registrar_movimentacao(
    peca_id: int,
    quantidade: int,
    tipo: str,
    observacao: Optional[str] = None,
) -> int:
    """Entrada ou saída manual de estoque. Faz commit. Retorna o novo saldo."""
    erros: List[str] = []
    if tipo not in TIPOS_MOVIMENTACAO:
        erros.append("Tipo de movimentação deve ser 'entrada' ou 'saida'")
    quantidade = como_inteiro(quantidade)
    if quantidade is None:
        erros.append("Quantidade deve ser um número inteiro")
    elif quantidade <= 0:
        erros.append("Quantidade deve ser maior que zero")
    if erros:
        raise ErroValidacao(erros)

    delta = quantidade if tipo == "entrada" else -quantidade
    try:
        novo = ajustar_estoque(
            peca_id,
            delta,
            referencia_tipo="manual",
            observacao=observacao,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[Estoque] Movimentação manual '{tipo}' de {quantidade} na peça {peca_id}")
    return novo


def listar_movimentacoes(peca_id: Optional[int] = None, limite: int = 100) -> List[MovimentacaoEstoque]:
    stmt = select(MovimentacaoEstoque)
    if peca_id is not None:
        stmt = stmt.where(MovimentacaoEstoque.peca_id == peca_id)
    stmt = stmt.order_by(MovimentacaoEstoque.id.desc()).limit(limite)
    return db.session.execute(stmt).scalars().all()


def peca_em_uso(peca_id: int) -> bool:
    """True se algum item de estoque de ordem não cancelada segura a peça."""
    stmt = (
        select(ItemOrdem.id)
        .join(OrdemServico, OrdemServico.id == ItemOrdem.ordem_id)
        .where(
            ItemOrdem.peca_id == peca_id,
            ItemOrdem.is_from_estoque.is_(True),
            OrdemServico.status != "cancelada",
        )
        .limit(1)
    )
    return db.session.execute(stmt).first() is not None
