# assistec/routes/pecas_routes.py
"""API de peças do estoque: cadastro, edição, exclusão, busca e movimentações.

O estoque não é editável pelo PUT; ele só muda por movimentação
(``/api/pecas/<id>/movimentacoes``) ou pelas ordens de serviço.
"""

from flask import Blueprint, request
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from assistec import db
from assistec.models_sqla import ItemOrdem, MovimentacaoEstoque, Peca
from assistec.routes.respostas import _err, _ok, payload_json
from assistec.services.erros import ErroValidacao
from assistec.services.estoque_service import (
    listar_movimentacoes,
    peca_em_uso,
    registrar_estoque_inicial,
    registrar_movimentacao,
)
from assistec.services.validacao_itens import como_inteiro

pecas_bp = Blueprint("pecas_bp", __name__, url_prefix="/api/pecas")

CAMPOS_OPCIONAIS = ("fabricante", "modelo", "codigo_fabricante")


def _ler_campos_peca(dados: dict, peca: Peca = None, *, aceita_estoque: bool) -> dict:
    """Valida e normaliza o payload de peça. Levanta ErroValidacao com todas as falhas."""
    erros = []
    campos = {}

    nome = (dados.get("nome") if "nome" in dados else (peca.nome if peca else "")) or ""
    if not str(nome).strip():
        erros.append("Nome da peça é obrigatório")
    campos["nome"] = str(nome).strip()

    for nome_campo in CAMPOS_OPCIONAIS:
        if nome_campo in dados:
            valor = dados[nome_campo]
            campos[nome_campo] = (str(valor).strip() or None) if valor is not None else None

    if "preco_unitario" in dados or peca is None:
        try:
            preco = float(dados.get("preco_unitario") or 0)
            if preco < 0:
                erros.append("Preço não pode ser negativo")
            campos["preco_unitario"] = preco
        except (TypeError, ValueError):
            erros.append("Preço inválido")

    if aceita_estoque:
        estoque = como_inteiro(dados.get("estoque") or 0)
        if estoque is None:
            erros.append("Estoque inválido")
        elif estoque < 0:
            erros.append("Estoque não pode ser negativo")
        else:
            campos["estoque"] = estoque
    elif "estoque" in dados and peca is not None and dados["estoque"] != peca.estoque:
        erros.append("Estoque só pode ser alterado por movimentação")

    if erros:
        raise ErroValidacao(erros)
    return campos


@pecas_bp.get("")
def listar_pecas():
    busca = (request.args.get("busca") or "").strip().lower()

    q = Peca.query
    if busca:
        like = f"%{busca}%"
        q = q.filter(
            or_(
                func.lower(Peca.nome).like(like),
                func.lower(Peca.fabricante).like(like),
                func.lower(Peca.codigo_fabricante).like(like),
            )
        )
    pecas = q.order_by(Peca.nome.asc()).all()
    return _ok(pecas=[p.as_dict() for p in pecas])


@pecas_bp.post("")
def cadastrar_peca():
    campos = _ler_campos_peca(payload_json(), aceita_estoque=True)
    nova_peca = Peca(**campos)
    try:
        db.session.add(nova_peca)
        db.session.flush()
        registrar_estoque_inicial(nova_peca)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        return _err(409, "conflito", f"Não foi possível cadastrar a peça: {e.orig}")
    return _ok(201, peca=nova_peca.as_dict())


@pecas_bp.get("/<int:peca_id>")
def consultar_peca(peca_id):
    peca = db.get_or_404(Peca, peca_id)
    return _ok(peca=peca.as_dict())


@pecas_bp.put("/<int:peca_id>")
def editar_peca(peca_id):
    peca = db.get_or_404(Peca, peca_id)
    campos = _ler_campos_peca(payload_json(), peca, aceita_estoque=False)
    for nome, valor in campos.items():
        setattr(peca, nome, valor)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        return _err(409, "conflito", f"Erro ao atualizar a peça: {e.orig}")
    return _ok(peca=peca.as_dict())


@pecas_bp.delete("/<int:peca_id>")
def deletar_peca(peca_id):
    peca = db.get_or_404(Peca, peca_id)
    if peca_em_uso(peca_id):
        return _err(
            409,
            "peca_em_uso",
            "Peça vinculada a ordens de serviço ativas; não pode ser excluída.",
            peca_id=peca_id,
        )
    try:
        # itens de ordens canceladas viram itens avulsos; o histórico vai junto com a peça
        ItemOrdem.query.filter_by(peca_id=peca_id).update({"peca_id": None})
        MovimentacaoEstoque.query.filter_by(peca_id=peca_id).delete()
        db.session.delete(peca)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return _err(
            409,
            "peca_em_uso",
            "Peça referenciada por itens ou movimentações; não pode ser excluída.",
            peca_id=peca_id,
        )
    return _ok(peca_id=peca_id)


@pecas_bp.get("/autocomplete")
def pecas_autocomplete():
    termo = request.args.get("termo", "").lower()
    resultados = (
        Peca.query.filter(Peca.nome.ilike(f"%{termo}%"))
        .order_by(Peca.nome.asc())
        .limit(10)
        .all()
    )
    sugestoes = [
        {"id": p.id, "nome": p.nome, "estoque": p.estoque, "preco_unitario": p.preco_unitario}
        for p in resultados
    ]
    return _ok(sugestoes=sugestoes)


@pecas_bp.get("/<int:peca_id>/movimentacoes")
def movimentacoes_peca(peca_id):
    db.get_or_404(Peca, peca_id)
    return _ok(movimentacoes=[m.as_dict() for m in listar_movimentacoes(peca_id)])


@pecas_bp.post("/<int:peca_id>/movimentacoes")
def nova_movimentacao(peca_id):
    db.get_or_404(Peca, peca_id)
    dados = payload_json()
    estoque = registrar_movimentacao(
        peca_id,
        dados.get("quantidade"),
        dados.get("tipo"),
        observacao=dados.get("observacao"),
    )
    return _ok(201, peca_id=peca_id, estoque=estoque)
