"""
Recipe calculator: material requirements and cost for producing a quantity
of a product.
"""
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

from .units import product_sqm, to_decimal

QUANTITY_PLACES = Decimal('0.0001')
MONEY_PLACES = Decimal('0.01')


def _money(value):
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _qty(value):
    return value.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def material_cost_per_unit(recipe_material):
    """Cost on the recipe line, else the raw material's current cost"""
    if recipe_material.cost_per_unit:
        return recipe_material.cost_per_unit
    if recipe_material.material_type == 'raw_material' and recipe_material.raw_material:
        return recipe_material.raw_material.cost_per_unit or Decimal('0')
    return Decimal('0')


def material_available_stock(recipe_material):
    material = recipe_material.material
    if material is None:
        return Decimal('0')
    return to_decimal(material.current_stock)


def required_per_sqm(recipe_material):
    """Quantity per SQM including the waste allowance"""
    waste = to_decimal(recipe_material.waste_factor) / Decimal('100')
    return to_decimal(recipe_material.quantity_per_sqm) * (Decimal('1') + waste)


def calculate_recipe_requirements(recipe, quantity):
    """
    Materials needed to produce quantity units of the recipe's product.

    The product's SQM per unit times quantity gives the total SQM; a product
    without dimensions is treated as priced per SQM, so quantity is the SQM.
    Raises ValueError for a quantity that is not positive.
    """
    quantity = to_decimal(quantity)
    if quantity <= 0:
        raise ValueError("Quantity must be greater than 0")

    sqm_per_unit = product_sqm(recipe.product)
    total_sqm = sqm_per_unit * quantity if sqm_per_unit > 0 else quantity

    lines = []
    total_cost = Decimal('0')
    can_produce = True
    max_producible = None

    for recipe_material in recipe.materials.select_related('raw_material', 'component_product'):
        per_sqm = required_per_sqm(recipe_material)
        required = per_sqm * total_sqm
        cost_per_unit = material_cost_per_unit(recipe_material)
        cost = required * cost_per_unit
        available = material_available_stock(recipe_material)
        is_sufficient = available >= required

        if not recipe_material.is_optional:
            if not is_sufficient:
                can_produce = False
            per_unit = per_sqm * (sqm_per_unit if sqm_per_unit > 0 else Decimal('1'))
            if per_unit > 0:
                producible = int((available / per_unit).to_integral_value(rounding=ROUND_DOWN))
                max_producible = producible if max_producible is None else min(max_producible, producible)

        total_cost += cost
        lines.append({
            'id': recipe_material.id,
            'material_type': recipe_material.material_type,
            'material_id': recipe_material.raw_material_id or recipe_material.component_product_id,
            'material_name': recipe_material.material_name,
            'unit': recipe_material.unit,
            'quantity_per_sqm': _qty(to_decimal(recipe_material.quantity_per_sqm)),
            'waste_factor': to_decimal(recipe_material.waste_factor),
            'required_quantity': _qty(required),
            'cost_per_unit': _money(cost_per_unit),
            'total_cost': _money(cost),
            'available_stock': _qty(available),
            'shortfall': _qty(max(Decimal('0'), required - available)),
            'is_sufficient': is_sufficient,
            'is_optional': recipe_material.is_optional,
        })

    return {
        'recipe_id': recipe.id,
        'product_id': recipe.product_id,
        'product_name': recipe.product.name,
        'quantity': quantity,
        'sqm_per_unit': _qty(sqm_per_unit),
        'total_sqm': _qty(total_sqm),
        'materials': lines,
        'total_cost': _money(total_cost),
        'cost_per_sqm': _money(total_cost / total_sqm) if total_sqm > 0 else Decimal('0.00'),
        'can_produce': can_produce,
        'max_producible': max_producible,
    }
