# assistec/routes/respostas.py
from flask import current_app as logapp
from flask import jsonify, request

from assistec.services.erros import (
    ErroPersistencia,
    ErroValidacao,
    EstoqueInsuficiente,
    OrdemNaoEncontrada,
    PecaNaoEncontrada,
    ProdutoNaoEncontrado,
    VendaNaoEncontrada,
)

# -------------------------------------------------------------------
# Helpers de resposta (padronizam erros e sucessos)
# -------------------------------------------------------------------


def _ok(http_code=200, **data):
    data.setdefault("ok", True)
    return jsonify(data), http_code


def _err(http_code, code, msg, **ctx):
    logapp.logger.warning("[API][%s] %s | ctx=%s", code, msg, ctx or "-")
    payload = {"ok": False, "error": code, "message": msg}
    payload.update(ctx)
    return jsonify(payload), http_code


def payload_json() -> dict:
    dados = request.get_json(silent=True)
    if not isinstance(dados, dict):
        raise ErroValidacao(["Corpo da requisição deve ser um objeto JSON"])
    return dados


def registrar_tratadores_erro(app):
    """Converte as exceções do domínio em respostas JSON."""

    @app.errorhandler(ErroValidacao)
    def _validacao(e):
        return _err(400, "validacao", str(e), erros=e.erros)

    @app.errorhandler(EstoqueInsuficiente)
    def _estoque(e):
        return _err(
            409,
            "estoque_insuficiente",
            str(e),
            peca_id=e.peca_id,
            disponivel=e.disponivel,
            solicitado=e.solicitado,
        )

    @app.errorhandler(PecaNaoEncontrada)
    def _peca(e):
        return _err(404, "peca_nao_encontrada", str(e), peca_id=e.peca_id)

    @app.errorhandler(OrdemNaoEncontrada)
    def _ordem(e):
        return _err(404, "ordem_nao_encontrada", str(e), ordem_id=e.ordem_id)

    @app.errorhandler(ProdutoNaoEncontrado)
    def _produto(e):
        return _err(404, "produto_nao_encontrado", str(e), produto_id=e.produto_id)

    @app.errorhandler(VendaNaoEncontrada)
    def _venda(e):
        return _err(404, "venda_nao_encontrada", str(e), venda_id=e.venda_id)

    @app.errorhandler(ErroPersistencia)
    def _persistencia(e):
        app.logger.error("[API] Erro de persistência (%s): %s", e.tipo, e)
        return _err(500, "persistencia", "Erro ao acessar o banco de dados.", tipo=e.tipo)

    @app.errorhandler(404)
    def _nao_encontrado(e):
        return _err(404, "nao_encontrado", "Recurso não encontrado.")
