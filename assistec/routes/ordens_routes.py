# assistec/routes/ordens_routes.py
from flask import Blueprint, request

from assistec import db
from assistec.models_sqla import STATUS_ORDEM, OrdemServico
from assistec.routes.respostas import _err, _ok, payload_json
from assistec.services.erros import ErroValidacao
from assistec.services.ordem_service import reconciliar_ao_excluir, salvar_ordem

ordens_bp = Blueprint("ordens_bp", __name__, url_prefix="/api/ordens")


def _separar_payload(dados: dict):
    itens = dados.pop("itens", [])
    if not isinstance(itens, list):
        raise ErroValidacao(["'itens' deve ser uma lista"])
    return dados, itens


@ordens_bp.get("")
def listar_ordens():
    q = OrdemServico.query
    status = request.args.get("status")
    if status:
        if status not in STATUS_ORDEM:
            return _err(400, "validacao", f"Status inválido: {status}")
        q = q.filter(OrdemServico.status == status)
    cliente_id = request.args.get("cliente_id", type=int)
    if cliente_id:
        q = q.filter(OrdemServico.cliente_id == cliente_id)

    ordens = q.order_by(OrdemServico.data_abertura.desc(), OrdemServico.id.desc()).all()
    return _ok(ordens=[o.as_dict(com_itens=False) for o in ordens])


@ordens_bp.post("")
def criar_ordem():
    dados, itens = _separar_payload(payload_json())
    ordem = salvar_ordem(dados, itens)
    return _ok(201, ordem=ordem.as_dict())


@ordens_bp.get("/<int:ordem_id>")
def consultar_ordem(ordem_id):
    ordem = db.get_or_404(OrdemServico, ordem_id)
    return _ok(ordem=ordem.as_dict())


@ordens_bp.put("/<int:ordem_id>")
def atualizar_ordem(ordem_id):
    dados, itens = _separar_payload(payload_json())
    ordem = salvar_ordem(dados, itens, ordem_id=ordem_id)
    return _ok(ordem=ordem.as_dict())


@ordens_bp.delete("/<int:ordem_id>")
def excluir_ordem(ordem_id):
    resumo = reconciliar_ao_excluir(ordem_id)
    return _ok(**resumo)
