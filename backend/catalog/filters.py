import django_filters
from django.db.models import Q

from .models import IndividualProduct, Product


class ProductFilter(django_filters.FilterSet):
    """Filter for Product model using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    subcategory = django_filters.CharFilter(field_name='subcategory', lookup_expr='iexact')
    status = django_filters.CharFilter(method='filter_status', label='Status')
    color = django_filters.CharFilter(field_name='color', lookup_expr='iexact')
    pattern = django_filters.CharFilter(field_name='pattern', lookup_expr='iexact')
    individual_stock_tracking = django_filters.CharFilter(method='filter_tracking', label='Individual tracking')

    class Meta:
        model = Product
        fields = ['search', 'category', 'subcategory', 'status', 'color', 'pattern', 'individual_stock_tracking']

    def filter_search(self, queryset, name, value):
        """
        Search name, QR code, category, color and pattern.

        Multi-word searches require every word to appear somewhere, so
        "red persian" matches "Persian Rug" in color Red.
        """
        words = [word for word in (value or '').split() if word]
        if not words:
            return queryset

        for word in words:
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(qr_code__iexact=word) |
                Q(category__icontains=word) |
                Q(subcategory__icontains=word) |
                Q(color__icontains=word) |
                Q(pattern__icontains=word)
            )
        return queryset.distinct()

    def filter_status(self, queryset, name, value):
        """Accepts a comma separated list, e.g. status=low-stock,out-of-stock"""
        statuses = [item.strip() for item in (value or '').split(',') if item.strip()]
        if not statuses:
            return queryset
        return queryset.filter(status__in=statuses)

    def filter_tracking(self, queryset, name, value):
        """Filter by individual stock tracking (handles string 'true'/'false')"""
        if value is None or value == '':
            return queryset
        if isinstance(value, str):
            tracked = value.lower() == 'true'
        else:
            tracked = bool(value)
        return queryset.filter(individual_stock_tracking=tracked)


class IndividualProductFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    product = django_filters.NumberFilter(field_name='product_id')
    batch = django_filters.NumberFilter(field_name='batch_id')
    status = django_filters.CharFilter(field_name='status')
    quality_grade = django_filters.CharFilter(field_name='quality_grade', lookup_expr='iexact')

    class Meta:
        model = IndividualProduct
        fields = ['search', 'product', 'batch', 'status', 'quality_grade']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(qr_code__icontains=value) |
            Q(serial_number__icontains=value) |
            Q(product__name__icontains=value) |
            Q(location__icontains=value)
        )
