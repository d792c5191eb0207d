# assistec/services/diferenca_itens.py
"""
Diferença entre dois conjuntos de itens de uma ordem -> ajustes de estoque.

Função pura (sem banco). Só entram itens com ``peca_id`` preenchido E
``is_from_estoque`` verdadeiro; itens manuais são ignorados mesmo que
carreguem um ``peca_id`` antigo.

Itens podem ser dicts ou objetos (ex.: ``ItemOrdem``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List


@dataclass(frozen=True)
class AjusteEstoque:
    peca_id: Any
    delta: int  # > 0 devolve ao estoque, < 0 debita


def campo(item: Any, nome: str, padrao: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(nome, padrao)
    return getattr(item, nome, padrao)


def eh_item_de_estoque(item: Any) -> bool:
    return bool(campo(item, "is_from_estoque")) and campo(item, "peca_id") not in (None, "")


def quantidades_por_peca(itens: Iterable[Any]) -> Dict[Any, int]:
    """Soma as quantidades por peça (ordem de primeira aparição preservada)."""
    totais: Dict[Any, int] = {}
    for item in itens or ():
        if not eh_item_de_estoque(item):
            continue
        peca_id = campo(item, "peca_id")
        totais[peca_id] = totais.get(peca_id, 0) + int(campo(item, "quantidade") or 0)
    return totais


def calcular_ajustes(originais: Iterable[Any], novos: Iterable[Any]) -> List[AjusteEstoque]:
    """
    Ajustes mínimos que levam o estoque de "consistente com ``originais``"
    para "consistente com ``novos``".

    Ordem do resultado: devoluções de peças removidas, depois débitos de
    peças adicionadas, depois alterações de quantidade.
    """
    antes = quantidades_por_peca(originais)
    depois = quantidades_por_peca(novos)

    ajustes: List[AjusteEstoque] = []

    # 1) removidas -> devolve tudo
    for peca_id, qtd in antes.items():
        if peca_id not in depois and qtd:
            ajustes.append(AjusteEstoque(peca_id, qtd))

    # 2) adicionadas -> debita tudo
    for peca_id, qtd in depois.items():
        if peca_id not in antes and qtd:
            ajustes.append(AjusteEstoque(peca_id, -qtd))

    # 3) presentes nos dois -> só a diferença
    for peca_id, qtd_nova in depois.items():
        if peca_id in antes:
            diferenca = antes[peca_id] - qtd_nova
            if diferenca != 0:
                ajustes.append(AjusteEstoque(peca_id, diferenca))

    return ajustes
