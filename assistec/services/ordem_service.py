# assistec/services/ordem_service.py
"""
Orquestração do estoque das ordens de serviço.

- reconciliar_ao_salvar: valida, calcula a diferença de itens, aplica os
  ajustes no ledger e só então grava os itens. Tudo numa transação: se
  qualquer ajuste falhar, os anteriores da mesma chamada são desfeitos.
- reconciliar_ao_excluir: devolve ao estoque os itens da ordem e a exclui.
  Falha ao devolver um item é logada e ignorada; a exclusão sempre segue.
- salvar_ordem: criação/edição completa (cabeçalho + itens) usada pela API.

Ordem cancelada não segura estoque: cancelar devolve, reabrir debita de novo.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assistec import db
from assistec.models_sqla import STATUS_ORDEM, Cliente, ItemOrdem, OrdemServico, Tecnico
from assistec.services.diferenca_itens import (
    AjusteEstoque,
    calcular_ajustes,
    campo,
    eh_item_de_estoque,
)
from assistec.services.erros import (
    ErroEstoque,
    ErroPersistencia,
    ErroValidacao,
    EstoqueInsuficiente,
    OrdemNaoEncontrada,
    PecaNaoEncontrada,
)
from assistec.services.estoque_service import ajustar_estoque, obter_pecas
from assistec.services.validacao_itens import como_inteiro, validar_estrutura, verificar_aumentos

logger = logging.getLogger(__name__)


# =============================
# Helpers de itens
# =============================
def _id_peca(valor: Any) -> Any:
    if valor in (None, ""):
        return None
    inteiro = como_inteiro(valor)
    return valor if inteiro is None else inteiro


def _snapshot_item(item: Any) -> Dict[str, Any]:
    return {
        "peca_id": _id_peca(campo(item, "peca_id")),
        "nome_item": campo(item, "nome_item"),
        "quantidade": campo(item, "quantidade"),
        "preco_unitario": campo(item, "preco_unitario"),
        "is_from_estoque": bool(campo(item, "is_from_estoque")),
    }


def _novo_item_ordem(item: Any) -> ItemOrdem:
    return ItemOrdem(
        peca_id=_id_peca(campo(item, "peca_id")),
        nome_item=str(campo(item, "nome_item")).strip(),
        quantidade=como_inteiro(campo(item, "quantidade")),
        preco_unitario=float(campo(item, "preco_unitario") or 0),
        is_from_estoque=bool(campo(item, "is_from_estoque")),
    )


def obter_itens_ordem(ordem_id: int, session: Optional[Session] = None) -> List[ItemOrdem]:
    sess = session or db.session
    ordem = sess.get(OrdemServico, ordem_id)
    if ordem is None:
        raise OrdemNaoEncontrada(ordem_id)
    return list(ordem.itens)


def substituir_itens_ordem(
    ordem_id: int, itens: Iterable[Any], session: Optional[Session] = None
) -> List[ItemOrdem]:
    """Troca todos os itens da ordem (apaga os antigos, insere os novos). Sem commit."""
    sess = session or db.session
    ordem = sess.get(OrdemServico, ordem_id)
    if ordem is None:
        raise OrdemNaoEncontrada(ordem_id)
    ordem.itens = [_novo_item_ordem(i) for i in itens]
    sess.flush()
    return ordem.itens


# =============================
# Reconciliação ao salvar
# =============================
def _checar_estoque_antes(
    sess: Session, originais: List[Any], novos: List[Any]
) -> None:
    """Checagem prévia (o ledger ainda confere de novo na escrita)."""
    ids = {campo(i, "peca_id") for i in novos if eh_item_de_estoque(i)}
    invalidos = [i for i in ids if not isinstance(i, int)]
    if invalidos:
        raise PecaNaoEncontrada(invalidos[0])

    pecas = obter_pecas(ids, session=sess, travar=True)
    for peca_id in sorted(ids):
        if peca_id not in pecas:
            raise PecaNaoEncontrada(peca_id)

    faltas = verificar_aumentos(originais, novos, pecas)
    if len(faltas) == 1:
        f = faltas[0]
        raise EstoqueInsuficiente(f.peca_id, f.disponivel, f.solicitado, nome=f.nome)
    if faltas:
        raise ErroValidacao(
            f"Estoque insuficiente para {f.nome}. Disponível: {f.disponivel}, "
            f"solicitado: {f.solicitado}"
            for f in faltas
        )


def reconciliar_ao_salvar(
    ordem_id: int,
    itens_originais: Iterable[Any],
    itens_novos: Iterable[Any],
    *,
    session: Optional[Session] = None,
    estoque_ativo_antes: bool = True,
    estoque_ativo_depois: bool = True,
    commit: bool = True,
) -> List[AjusteEstoque]:
    """
    Ajusta o estoque para refletir a troca de ``itens_originais`` por
    ``itens_novos`` e grava os novos itens da ordem.

    ``estoque_ativo_antes``/``estoque_ativo_depois`` = False tratam o lado
    correspondente como vazio para o estoque (ordem cancelada), mas os itens
    continuam sendo gravados.

    Retorna os ajustes aplicados. Em qualquer falha faz rollback e relança.
    """
    sess = session or db.session
    itens_originais = [_snapshot_item(i) for i in itens_originais or []]
    itens_novos = [_snapshot_item(i) for i in itens_novos or []]

    lado_antes = itens_originais if estoque_ativo_antes else []
    lado_depois = itens_novos if estoque_ativo_depois else []

    try:
        erros = validar_estrutura(itens_novos)
        if erros:
            raise ErroValidacao(erros)

        _checar_estoque_antes(sess, lado_antes, lado_depois)

        ajustes = calcular_ajustes(lado_antes, lado_depois)
        for ajuste in ajustes:
            ajustar_estoque(
                int(ajuste.peca_id),
                ajuste.delta,
                session=sess,
                referencia_tipo="ordem",
                referencia_id=ordem_id,
            )

        substituir_itens_ordem(ordem_id, itens_novos, session=sess)
        if commit:
            sess.commit()

    except ErroValidacao:
        sess.rollback()
        raise
    except ErroEstoque as e:
        sess.rollback()
        logger.error(f"[Ordem] Reconciliação da ordem {ordem_id} desfeita: {e}")
        raise
    except SQLAlchemyError as e:
        sess.rollback()
        logger.error(f"[Ordem] Erro de banco ao salvar itens da ordem {ordem_id}: {e}")
        raise ErroPersistencia(f"Erro ao salvar itens da ordem {ordem_id}: {e}", original=e) from e

    logger.info(f"[Ordem] Ordem {ordem_id}: {len(ajustes)} ajuste(s) de estoque aplicados.")
    return ajustes


# =============================
# Reconciliação ao excluir
# =============================
def reconciliar_ao_excluir(ordem_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Devolve ao estoque os itens da ordem e a exclui (itens, depois a ordem).

    Ordem cancelada já devolveu o estoque; nada é devolvido de novo.
    """
    sess = session or db.session
    ordem = sess.get(OrdemServico, ordem_id)
    if ordem is None:
        raise OrdemNaoEncontrada(ordem_id)

    itens = list(ordem.itens)
    devolvidas: List[Dict[str, Any]] = []
    ignoradas: List[Dict[str, Any]] = []

    if ordem.status != "cancelada":
        for item in itens:
            if not eh_item_de_estoque(item):
                continue
            try:
                with sess.begin_nested():
                    ajustar_estoque(
                        item.peca_id,
                        int(item.quantidade),
                        session=sess,
                        referencia_tipo="exclusao_ordem",
                        referencia_id=ordem_id,
                    )
                devolvidas.append({"peca_id": item.peca_id, "quantidade": item.quantidade})
            except ErroEstoque as e:
                # não bloqueia a exclusão
                logger.warning(
                    f"[Ordem] Não foi possível devolver {item.quantidade} da peça "
                    f"{item.peca_id} (ordem {ordem_id}): {e}"
                )
                ignoradas.append({"peca_id": item.peca_id, "motivo": str(e)})

    try:
        ordem.itens.clear()
        sess.flush()
        sess.delete(ordem)
        sess.commit()
    except SQLAlchemyError as e:
        sess.rollback()
        logger.error(f"[Ordem] Erro ao excluir ordem {ordem_id}: {e}")
        raise ErroPersistencia(f"Erro ao excluir ordem {ordem_id}: {e}", original=e) from e

    logger.info(
        f"[Ordem] Ordem {ordem_id} excluída; {len(devolvidas)} item(ns) devolvido(s), "
        f"{len(ignoradas)} ignorado(s)."
    )
    return {"ordem_id": ordem_id, "devolvidas": devolvidas, "ignoradas": ignoradas}


# =============================
# Salvar ordem completa (cabeçalho + itens)
# =============================
CAMPOS_TEXTO = ("dispositivo", "descricao_problema", "diagnostico", "servico_realizado")


def _texto(valor: Any) -> Optional[str]:
    if valor is None:
        return None
    valor = str(valor).strip()
    return valor or None


def _validar_cabecalho(sess: Session, dados: Dict[str, Any]) -> List[str]:
    erros: List[str] = []

    cliente_id = dados.get("cliente_id")
    if not cliente_id:
        erros.append("Cliente é obrigatório")
    elif sess.get(Cliente, cliente_id) is None:
        erros.append(f"Cliente {cliente_id} não encontrado")

    tecnico_id = dados.get("tecnico_id")
    if tecnico_id and sess.get(Tecnico, tecnico_id) is None:
        erros.append(f"Técnico {tecnico_id} não encontrado")

    if not _texto(dados.get("dispositivo")):
        erros.append("Dispositivo é obrigatório")
    if not _texto(dados.get("descricao_problema")):
        erros.append("Descrição do problema é obrigatória")

    status = dados.get("status") or "aberta"
    if status not in STATUS_ORDEM:
        erros.append(f"Status inválido: {status}")

    valor = dados.get("valor_manutencao")
    if valor not in (None, ""):
        try:
            if float(valor) < 0:
                erros.append("Valor da manutenção não pode ser negativo")
        except (TypeError, ValueError):
            erros.append("Valor da manutenção inválido")
    return erros


def salvar_ordem(
    dados: Dict[str, Any],
    itens: Iterable[Any],
    ordem_id: Optional[int] = None,
    session: Optional[Session] = None,
) -> OrdemServico:
    """Cria (``ordem_id=None``) ou atualiza uma ordem com seus itens, numa transação."""
    sess = session or db.session
    itens = list(itens or [])

    erros = _validar_cabecalho(sess, dados) + validar_estrutura(itens)
    if erros:
        raise ErroValidacao(erros)

    if ordem_id is not None:
        ordem = sess.get(OrdemServico, ordem_id)
        if ordem is None:
            raise OrdemNaoEncontrada(ordem_id)
        originais = [_snapshot_item(i) for i in ordem.itens]
        status_anterior = ordem.status
    else:
        ordem = OrdemServico(data_abertura=datetime.utcnow())
        sess.add(ordem)
        originais = []
        status_anterior = None

    status = dados.get("status") or "aberta"
    ordem.cliente_id = int(dados["cliente_id"])
    ordem.tecnico_id = int(dados["tecnico_id"]) if dados.get("tecnico_id") else None
    for nome in CAMPOS_TEXTO:
        setattr(ordem, nome, _texto(dados.get(nome)))
    valor = dados.get("valor_manutencao")
    ordem.valor_manutencao = float(valor) if valor not in (None, "") else None
    ordem.status = status
    if status == "concluida" and ordem.data_conclusao is None:
        ordem.data_conclusao = datetime.utcnow()

    try:
        sess.flush()
    except SQLAlchemyError as e:
        sess.rollback()
        raise ErroPersistencia(f"Erro ao salvar ordem: {e}", original=e) from e

    reconciliar_ao_salvar(
        ordem.id,
        originais,
        itens,
        session=sess,
        estoque_ativo_antes=status_anterior != "cancelada",
        estoque_ativo_depois=status != "cancelada",
    )
    logger.info(
        f"[Ordem] Ordem {ordem.id} {'atualizada' if ordem_id else 'criada'} (status {status})."
    )
    return ordem
