# assistec/routes/produtos_routes.py
"""API de produtos de revenda e suas categorias.

Diferente das peças, o estoque do produto pode ser ajustado no PUT; as
vendas debitam e devolvem pelo ``vendas_service``.
"""

from flask import Blueprint, request
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from assistec import db
from assistec.models_sqla import CategoriaProduto, ItemVenda, Produto
from assistec.routes.respostas import _err, _ok, payload_json
from assistec.services.erros import ErroValidacao
from assistec.services.validacao_itens import como_inteiro

produtos_bp = Blueprint("produtos_bp", __name__, url_prefix="/api/produtos")

CAMPOS_TEXTO = ("marca", "sku", "descricao")


def _ler_campos_produto(dados: dict, produto: Produto = None) -> dict:
    """Valida e normaliza o payload de produto. Levanta ErroValidacao com todas as falhas."""
    erros = []
    campos = {}

    if "nome" in dados or produto is None:
        nome = str(dados.get("nome") or "").strip()
        if not nome:
            erros.append("Nome do produto é obrigatório")
        campos["nome"] = nome

    for nome_campo in CAMPOS_TEXTO:
        if nome_campo in dados:
            valor = dados[nome_campo]
            campos[nome_campo] = (str(valor).strip() or None) if valor is not None else None

    for nome_campo, rotulo in (("preco", "Preço"), ("preco_custo", "Preço de custo")):
        if nome_campo in dados or (produto is None and nome_campo == "preco"):
            try:
                valor = float(dados.get(nome_campo) or 0)
                if valor < 0:
                    erros.append(f"{rotulo} não pode ser negativo")
                campos[nome_campo] = valor
            except (TypeError, ValueError):
                erros.append(f"{rotulo} inválido")

    for nome_campo, rotulo in (("estoque", "Estoque"), ("garantia_meses", "Garantia")):
        if nome_campo in dados or produto is None:
            valor = como_inteiro(dados.get(nome_campo) or 0)
            if valor is None:
                erros.append(f"{rotulo} deve ser um número inteiro")
            elif valor < 0:
                erros.append(f"{rotulo} não pode ser negativo")
            else:
                campos[nome_campo] = valor

    if "categoria_id" in dados:
        categoria_id = dados.get("categoria_id")
        if categoria_id in (None, ""):
            campos["categoria_id"] = None
        elif como_inteiro(categoria_id) is None or db.session.get(
            CategoriaProduto, como_inteiro(categoria_id)
        ) is None:
            erros.append(f"Categoria {categoria_id} não encontrada")
        else:
            campos["categoria_id"] = como_inteiro(categoria_id)

    if erros:
        raise ErroValidacao(erros)
    return campos


# ============================
# Categorias
# ============================


@produtos_bp.get("/categorias")
def listar_categorias():
    categorias = CategoriaProduto.query.order_by(CategoriaProduto.nome.asc()).all()
    return _ok(categorias=[c.as_dict() for c in categorias])


@produtos_bp.post("/categorias")
def cadastrar_categoria():
    nome = str(payload_json().get("nome") or "").strip()
    if not nome:
        raise ErroValidacao(["Nome da categoria é obrigatório"])
    categoria = CategoriaProduto(nome=nome)
    try:
        db.session.add(categoria)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return _err(409, "conflito", f"Categoria '{nome}' já existe.")
    return _ok(201, categoria=categoria.as_dict())


# ============================
# Produtos
# ============================


@produtos_bp.get("")
def listar_produtos():
    q = Produto.query
    busca = (request.args.get("busca") or "").strip().lower()
    if busca:
        like = f"%{busca}%"
        q = q.filter(
            or_(
                func.lower(Produto.nome).like(like),
                func.lower(Produto.marca).like(like),
                func.lower(Produto.sku).like(like),
            )
        )
    categoria_id = request.args.get("categoria_id", type=int)
    if categoria_id:
        q = q.filter(Produto.categoria_id == categoria_id)
    if request.args.get("em_estoque") == "1":
        q = q.filter(Produto.estoque > 0)

    produtos = q.order_by(Produto.nome.asc()).all()
    return _ok(produtos=[p.as_dict() for p in produtos])


@produtos_bp.post("")
def cadastrar_produto():
    produto = Produto(**_ler_campos_produto(payload_json()))
    db.session.add(produto)
    db.session.commit()
    return _ok(201, produto=produto.as_dict())


@produtos_bp.get("/<int:produto_id>")
def consultar_produto(produto_id):
    produto = db.get_or_404(Produto, produto_id)
    return _ok(produto=produto.as_dict())


@produtos_bp.put("/<int:produto_id>")
def editar_produto(produto_id):
    produto = db.get_or_404(Produto, produto_id)
    for nome, valor in _ler_campos_produto(payload_json(), produto).items():
        setattr(produto, nome, valor)
    db.session.commit()
    return _ok(produto=produto.as_dict())


@produtos_bp.delete("/<int:produto_id>")
def deletar_produto(produto_id):
    produto = db.get_or_404(Produto, produto_id)
    if ItemVenda.query.filter_by(produto_id=produto_id).first():
        return _err(
            409,
            "produto_com_vendas",
            "Produto consta em vendas registradas; não pode ser excluído.",
            produto_id=produto_id,
        )
    db.session.delete(produto)
    db.session.commit()
    return _ok(produto_id=produto_id)
