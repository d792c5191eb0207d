"""Criando tabelas de categorias, produtos, vendas e itens de venda

Revision ID: 9b4e2c61f0a7
Revises: 3f1c9a7d2b10
Create Date: 2026-10-18 14:03:27.551920

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9b4e2c61f0a7'
down_revision = '3f1c9a7d2b10'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('categorias_produto',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=80), nullable=False),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nome')
    )
    op.create_table('produtos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=120), nullable=False),
        sa.Column('categoria_id', sa.Integer(), nullable=True),
        sa.Column('marca', sa.String(length=100), nullable=True),
        sa.Column('sku', sa.String(length=60), nullable=True),
        sa.Column('preco_custo', sa.Float(), nullable=True),
        sa.Column('preco', sa.Float(), nullable=False),
        sa.Column('estoque', sa.Integer(), nullable=False),
        sa.Column('garantia_meses', sa.Integer(), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.Column('atualizado_em', sa.DateTime(), nullable=False),
        sa.CheckConstraint('estoque >= 0', name='ck_produtos_estoque_nao_negativo'),
        sa.ForeignKeyConstraint(['categoria_id'], ['categorias_produto.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('vendas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cliente_id', sa.Integer(), nullable=True),
        sa.Column('vendedor_nome', sa.String(length=120), nullable=False),
        sa.Column('valor_total', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('forma_pagamento', sa.String(length=20), nullable=True),
        sa.Column('observacoes', sa.Text(), nullable=True),
        sa.Column('data_venda', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('itens_venda',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('venda_id', sa.Integer(), nullable=False),
        sa.Column('produto_id', sa.Integer(), nullable=False),
        sa.Column('quantidade', sa.Integer(), nullable=False),
        sa.Column('preco_unitario', sa.Float(), nullable=False),
        sa.Column('garantia_ate', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['produto_id'], ['produtos.id'], ),
        sa.ForeignKeyConstraint(['venda_id'], ['vendas.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_itens_venda_venda_id', 'itens_venda', ['venda_id'])
    op.create_index('ix_itens_venda_produto_id', 'itens_venda', ['produto_id'])


def downgrade():
    op.drop_index('ix_itens_venda_produto_id', table_name='itens_venda')
    op.drop_index('ix_itens_venda_venda_id', table_name='itens_venda')
    op.drop_table('itens_venda')
    op.drop_table('vendas')
    op.drop_table('produtos')
    op.drop_table('categorias_produto')
