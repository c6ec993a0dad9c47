"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

LANGUAGES = ("en", "fr", "de", "es", "it", "pt", "nl", "ru", "tr", "ar", "zh")


def localized(*fields):
    return [sa.Column(f"{field}_{lang}", sa.Text(), nullable=True) for field in fields for lang in LANGUAGES]


def upgrade() -> None:
    op.create_table(
        'restaurants',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=True),
        sa.Column('ui_language', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index(op.f('ix_restaurants_owner_id'), 'restaurants', ['owner_id'], unique=False)

    op.create_table(
        'menu_categories',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('restaurant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        *localized('name', 'description'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_menu_categories_restaurant_id'), 'menu_categories', ['restaurant_id'], unique=False)

    op.create_table(
        'menu_items',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('category_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('promotion_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('tax_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('in_stock', sa.Boolean(), nullable=False),
        sa.Column('available_from', sa.String(), nullable=True),
        sa.Column('available_until', sa.String(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        *localized('name', 'description'),
        sa.ForeignKeyConstraint(['category_id'], ['menu_categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_menu_items_category_id'), 'menu_items', ['category_id'], unique=False)

    op.create_table(
        'menu_item_options',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('menu_item_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('multiple', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        *localized('name'),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_menu_item_options_menu_item_id'), 'menu_item_options', ['menu_item_id'], unique=False)

    op.create_table(
        'option_choices',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('option_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        *localized('name'),
        sa.ForeignKeyConstraint(['option_id'], ['menu_item_options.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_option_choices_option_id'), 'option_choices', ['option_id'], unique=False)

    op.create_table(
        'topping_categories',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('restaurant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('min_selections', sa.Integer(), nullable=False),
        sa.Column('max_selections', sa.Integer(), nullable=False),
        sa.Column('allow_multiple_same_topping', sa.Boolean(), nullable=False),
        sa.Column('show_if_selection_type', sa.JSON(), nullable=True),
        sa.Column('show_if_selection_id', sa.JSON(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        *localized('name', 'description'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_topping_categories_restaurant_id'), 'topping_categories', ['restaurant_id'], unique=False)

    op.create_table(
        'toppings',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('category_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('tax_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('in_stock', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        *localized('name'),
        sa.ForeignKeyConstraint(['category_id'], ['topping_categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_toppings_category_id'), 'toppings', ['category_id'], unique=False)

    op.create_table(
        'menu_item_topping_categories',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('menu_item_id', sa.String(), nullable=False),
        sa.Column('topping_category_id', sa.String(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.ForeignKeyConstraint(['topping_category_id'], ['topping_categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_menu_item_topping_categories_menu_item_id'),
        'menu_item_topping_categories', ['menu_item_id'], unique=False,
    )
    op.create_index(
        op.f('ix_menu_item_topping_categories_topping_category_id'),
        'menu_item_topping_categories', ['topping_category_id'], unique=False,
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('restaurant_id', sa.String(), nullable=False),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('order_type', sa.String(), nullable=True),
        sa.Column('table_number', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.Column('tax', sa.Numeric(10, 2), nullable=False),
        sa.Column('total', sa.Numeric(10, 2), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_orders_restaurant_id'), 'orders', ['restaurant_id'], unique=False)

    op.create_table(
        'payments',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_payments_order_id'), 'payments', ['order_id'], unique=False)

    op.create_table(
        'restaurant_print_config',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('restaurant_id', sa.String(), nullable=False),
        sa.Column('configured_printers', sa.JSON(), nullable=True),
        sa.Column('browser_printing_enabled', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('restaurant_id'),
    )

    op.create_table(
        'security_audit_log',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('restaurant_id', sa.String(), nullable=True),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('severity', sa.String(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_security_audit_log_restaurant_id'), 'security_audit_log', ['restaurant_id'], unique=False)


def downgrade() -> None:
    op.drop_table('security_audit_log')
    op.drop_table('restaurant_print_config')
    op.drop_table('payments')
    op.drop_table('orders')
    op.drop_table('menu_item_topping_categories')
    op.drop_table('toppings')
    op.drop_table('topping_categories')
    op.drop_table('option_choices')
    op.drop_table('menu_item_options')
    op.drop_table('menu_items')
    op.drop_table('menu_categories')
    op.drop_table('restaurants')
