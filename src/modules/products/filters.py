import django_filters
from django.db.models import Q

from modules.products.models import Product


class JSONContainsFilter(django_filters.CharFilter):
    """Matches products whose JSON list field holds the given value."""

    def filter(self, qs, value):
        if not value:
            return qs
        # JSON ``contains`` is not supported on SQLite; match the encoded element.
        return qs.filter(**{f"{self.field_name}__icontains": f'"{value}"'})


class ProductFilter(django_filters.FilterSet):
    category = django_filters.CharFilter(field_name="category", lookup_expr="iexact")
    color = JSONContainsFilter(field_name="colors")
    size = JSONContainsFilter(field_name="sizes")
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")
    featured = django_filters.BooleanFilter(field_name="is_featured")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Product
        fields = ["category", "color", "size", "min_price", "max_price", "featured"]

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value)
            | Q(description__icontains=value)
            | Q(tags__icontains=value)
        )
