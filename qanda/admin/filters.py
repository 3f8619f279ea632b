from django.contrib import admin


class ApprovalStatusFilter(admin.SimpleListFilter):
    title = "Approval"
    parameter_name = "approval"

    def lookups(self, request, model_admin):
        return (("pending", "Pending"), ("approved", "Approved"))

    def queryset(self, request, queryset):
        if self.value() == "pending":
            return queryset.filter(is_approved=False)
        elif self.value() == "approved":
            return queryset.filter(is_approved=True)
        return queryset


class VotesListFilter(admin.SimpleListFilter):
    """
    Filter records by bands of their vote total
    """

    title = "Total votes"
    parameter_name = "votes"

    # (value, label, lower bound, upper bound or None)
    bands = (
        ("0", "No votes", 0, 0),
        ("1-9", "1 to 9", 1, 9),
        ("10-99", "10 to 99", 10, 99),
        ("100+", "100 or more", 100, None),
    )

    def lookups(self, request, model_admin):
        return [(value, label) for value, label, _, _ in self.bands]

    def queryset(self, request, queryset):
        for value, _, lower, upper in self.bands:
            if self.value() == value:
                queryset = queryset.filter(votes__gte=lower)
                if upper is not None:
                    queryset = queryset.filter(votes__lte=upper)
                return queryset
        return queryset
