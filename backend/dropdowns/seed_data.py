"""
Default dropdown options loaded by the seed_dropdowns command.
(category, value, display_order)
"""

DEFAULT_DROPDOWN_OPTIONS = [
    # Colors
    ('color', 'Red', 1),
    ('color', 'Blue', 2),
    ('color', 'Green', 3),
    ('color', 'Yellow', 4),
    ('color', 'Black', 5),
    ('color', 'White', 6),
    ('color', 'Brown', 7),
    ('color', 'Gray', 8),
    ('color', 'Multi-color', 9),
    ('color', 'NA', 10),

    # Patterns
    ('pattern', 'Persian Medallion', 1),
    ('pattern', 'Geometric', 2),
    ('pattern', 'Floral', 3),
    ('pattern', 'Abstract', 4),
    ('pattern', 'Traditional', 5),
    ('pattern', 'Modern', 6),
    ('pattern', 'Digital Art', 7),
    ('pattern', 'Standard', 8),
    ('pattern', 'RD-1009', 999),

    # Product categories
    ('category', 'plain paper print', 1),
    ('category', 'degital print', 2),
    ('category', 'backing', 3),
    ('category', 'felt', 4),
    ('category', 'raw material', 5),

    # Units
    ('unit', 'roll', 1),
    ('unit', 'GSM', 2),
    ('unit', 'kg', 3),
    ('unit', 'liter', 4),

    # Widths
    ('width', '5 feet', 1),
    ('width', '6 feet', 2),
    ('width', '10 feet', 3),
    ('width', '1.25 meter', 4),
    ('width', '1.83 meter', 5),
    ('width', '3.05 meter', 6),

    # Heights
    ('height', '148 feet', 1),
    ('height', '45 meter', 2),

    # Weights
    ('weight', '400 GSM', 1),
    ('weight', '600 GSM', 2),
    ('weight', '700 GSM', 3),
    ('weight', '800 GSM', 4),

    # Thickness
    ('thickness', '5mm', 1),
    ('thickness', '8mm', 2),
    ('thickness', '10mm', 3),
    ('thickness', '11mm', 4),
    ('thickness', '12mm', 5),
    ('thickness', '15mm', 6),
    ('thickness', '3 mm', 999),
]
