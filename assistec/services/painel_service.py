# assistec/services/painel_service.py
from __future__ import annotations

import logging
from typing import Dict, List

from sqlalchemy import func

from assistec import db
from assistec.models_sqla import (
    STATUS_ORDEM,
    Cliente,
    ItemOrdem,
    OrdemServico,
    Peca,
    Tecnico,
    Venda,
)
from assistec.services.vendas_service import faturamento_vendas

logger = logging.getLogger(__name__)

__all__ = ["resumo_painel", "faturamento_concluidas"]


def faturamento_concluidas() -> float:
    """Soma (taxa de manutenção + itens) das ordens concluídas."""
    taxas = (
        db.session.query(func.coalesce(func.sum(OrdemServico.valor_manutencao), 0.0))
        .filter(OrdemServico.status == "concluida")
        .scalar()
    )
    itens = (
        db.session.query(
            func.coalesce(func.sum(ItemOrdem.quantidade * ItemOrdem.preco_unitario), 0.0)
        )
        .join(OrdemServico, OrdemServico.id == ItemOrdem.ordem_id)
        .filter(OrdemServico.status == "concluida")
        .scalar()
    )
    return round(float(taxas or 0) + float(itens or 0), 2)


def resumo_painel(limite_estoque_baixo: int = 2, recentes: int = 5) -> Dict:
    """
    Números do painel inicial:
      - ordens por status e total
      - totais de clientes, técnicos e peças
      - peças com estoque <= limite_estoque_baixo
      - faturamento das ordens concluídas e das vendas
      - ordens mais recentes
    """
    por_status: Dict[str, int] = {s: 0 for s in STATUS_ORDEM}
    for status, qtd in (
        db.session.query(OrdemServico.status, func.count(OrdemServico.id))
        .group_by(OrdemServico.status)
        .all()
    ):
        por_status[status] = qtd

    estoque_baixo: List[Dict] = [
        {"id": p.id, "nome": p.nome, "estoque": p.estoque}
        for p in Peca.query.filter(Peca.estoque <= limite_estoque_baixo)
        .order_by(Peca.estoque.asc(), Peca.nome.asc())
        .all()
    ]

    ultimas = (
        OrdemServico.query.order_by(OrdemServico.data_abertura.desc(), OrdemServico.id.desc())
        .limit(recentes)
        .all()
    )

    resumo = {
        "total_ordens": sum(por_status.values()),
        "ordens_por_status": por_status,
        "total_clientes": Cliente.query.count(),
        "total_tecnicos": Tecnico.query.count(),
        "total_pecas": Peca.query.count(),
        "pecas_estoque_baixo": estoque_baixo,
        "faturamento_concluidas": faturamento_concluidas(),
        "total_vendas": Venda.query.filter(Venda.status == "concluida").count(),
        "faturamento_vendas": faturamento_vendas(),
        "ordens_recentes": [o.as_dict(com_itens=False) for o in ultimas],
    }
    logger.debug(f"[Painel] Resumo calculado: {resumo['total_ordens']} ordens")
    return resumo
