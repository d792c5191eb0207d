# assistec/services/validacao_itens.py
"""Validação dos itens de uma ordem de serviço.

Todas as funções retornam TODAS as violações encontradas (nunca só a
primeira), para a tela exibir a lista completa.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from assistec.services.diferenca_itens import campo, eh_item_de_estoque, quantidades_por_peca

PecasConhecidas = Union[Mapping[Any, Any], Iterable[Any], None]


@dataclass
class FaltaEstoque:
    peca_id: Any
    nome: Optional[str]
    disponivel: int
    solicitado: int


def _indexar_pecas(pecas: PecasConhecidas) -> Dict[Any, Any]:
    if pecas is None:
        return {}
    if isinstance(pecas, Mapping):
        return dict(pecas)
    return {campo(p, "id"): p for p in pecas}


def como_inteiro(valor: Any) -> Optional[int]:
    """``valor`` como int; ``None`` se não for inteiro (2.5, "2.5", True, "abc")."""
    if isinstance(valor, bool):
        return None
    if isinstance(valor, int):
        return valor
    if isinstance(valor, str):
        try:
            return int(valor.strip())
        except ValueError:
            return None
    return None


def _numero(valor: Any) -> Optional[float]:
    try:
        return float(valor)
    except (TypeError, ValueError):
        return None


def validar_item(item: Any, pecas: PecasConhecidas = None) -> Optional[str]:
    """Primeira violação do item, ou ``None`` se ele for válido."""
    nome = campo(item, "nome_item") or ""
    if not str(nome).strip():
        return "Nome do item é obrigatório"

    bruto = campo(item, "quantidade")
    if bruto in (None, ""):
        return "Quantidade deve ser maior que zero"
    quantidade = como_inteiro(bruto)
    if quantidade is None:
        return "Quantidade deve ser um número inteiro"
    if quantidade <= 0:
        return "Quantidade deve ser maior que zero"

    preco = _numero(campo(item, "preco_unitario", 0))
    if preco is None or preco < 0:
        return "Preço não pode ser negativo"

    peca_id = campo(item, "peca_id")
    if peca_id not in (None, "") and como_inteiro(peca_id) is None:
        return f"Peça inválida: {peca_id}"

    if eh_item_de_estoque(item):
        peca = _indexar_pecas(pecas).get(campo(item, "peca_id"))
        if peca is not None:
            disponivel = campo(peca, "estoque") or 0
            if disponivel < quantidade:
                return (
                    f"Estoque insuficiente. Disponível: {disponivel}, "
                    f"solicitado: {quantidade}"
                )
    return None


def validar_itens(itens: Iterable[Any], pecas: PecasConhecidas = None) -> List[str]:
    """Valida cada item e o total por peça (peça repetida em mais de uma linha)."""
    itens = list(itens or [])
    indice = _indexar_pecas(pecas)
    erros: List[str] = []
    validos: List[Any] = []

    for n, item in enumerate(itens, start=1):
        erro = validar_item(item, indice)
        if erro:
            erros.append(f"Item {n}: {erro}")
        else:
            validos.append(item)

    # total por peça só sobre itens válidos
    linhas_por_peca: Dict[Any, int] = {}
    for item in validos:
        if eh_item_de_estoque(item):
            peca_id = campo(item, "peca_id")
            linhas_por_peca[peca_id] = linhas_por_peca.get(peca_id, 0) + 1

    for peca_id, total in quantidades_por_peca(validos).items():
        peca = indice.get(peca_id)
        if peca is None or linhas_por_peca.get(peca_id, 0) < 2:
            continue
        disponivel = campo(peca, "estoque") or 0
        if total > disponivel:
            erros.append(
                f"Total de {campo(peca, 'nome')} excede estoque "
                f"({disponivel} disponível, {total} solicitado)"
            )
    return erros


def validar_estrutura(itens: Iterable[Any]) -> List[str]:
    """Somente as checagens estruturais (nome, quantidade, preço)."""
    return validar_itens(itens, None)


def verificar_aumentos(
    originais: Iterable[Any], novos: Iterable[Any], pecas: PecasConhecidas
) -> List[FaltaEstoque]:
    """
    Para cada peça cuja quantidade aumenta (ou que é nova na ordem), confere
    se o estoque atual cobre o AUMENTO líquido. Peças desconhecidas são
    ignoradas aqui; o ledger reporta ``PecaNaoEncontrada``.
    """
    indice = _indexar_pecas(pecas)
    antes = quantidades_por_peca(originais)
    faltas: List[FaltaEstoque] = []
    for peca_id, qtd_nova in quantidades_por_peca(novos).items():
        aumento = qtd_nova - antes.get(peca_id, 0)
        peca = indice.get(peca_id)
        if aumento <= 0 or peca is None:
            continue
        disponivel = campo(peca, "estoque") or 0
        if disponivel < aumento:
            faltas.append(
                FaltaEstoque(
                    peca_id=peca_id,
                    nome=campo(peca, "nome"),
                    disponivel=disponivel,
                    solicitado=aumento,
                )
            )
    return faltas
