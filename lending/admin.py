from django.contrib import admin
from .models import (
    Customer, Loan, Payment, LoanTopUp,
    ArchivedLoan, ArchivedPayment,
    ChitGroup, ChitMember, ChitPayment, ChitAuction, ChitMonthSettings,
)

# ==============================================================================
# LOAN LEDGER
# ==============================================================================

@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'created_at']
    search_fields = ['name', 'phone']
    readonly_fields = ['created_at', 'updated_at']


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ['week_number', 'payment_date', 'amount', 'offline_amount', 'online_amount',
              'payment_mode', 'balance_after']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class LoanTopUpInline(admin.TabularInline):
    model = LoanTopUp
    extra = 0
    readonly_fields = ['amount', 'balance_before', 'balance_after', 'principal_after', 'top_up_date', 'notes']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = ['customer', 'loan_name', 'period_unit', 'principal', 'installment',
                   'balance', 'status', 'start_date']
    list_filter = ['status', 'period_unit']
    search_fields = ['customer__name', 'customer__phone', 'loan_name']
    # Money moves only through the ledger operations
    readonly_fields = ['principal', 'balance', 'status', 'closed_at', 'created_at', 'updated_at']
    inlines = [PaymentInline, LoanTopUpInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['loan', 'week_number', 'amount', 'payment_mode', 'payment_date', 'balance_after']
    list_filter = ['payment_mode', 'payment_date']
    search_fields = ['loan__customer__name', 'loan__loan_name']
    readonly_fields = ['loan', 'amount', 'offline_amount', 'online_amount', 'week_number',
                      'balance_after', 'weeks_covered', 'created_at']


# ==============================================================================
# ARCHIVE
# ==============================================================================

class ArchivedPaymentInline(admin.TabularInline):
    model = ArchivedPayment
    extra = 0
    readonly_fields = ['week_number', 'payment_date', 'amount', 'payment_mode', 'balance_after']
    fields = readonly_fields
    can_delete = False


@admin.register(ArchivedLoan)
class ArchivedLoanAdmin(admin.ModelAdmin):
    list_display = ['customer_name', 'loan_name', 'principal', 'balance', 'written_off', 'archived_at']
    list_filter = ['written_off', 'period_unit']
    search_fields = ['customer_name', 'customer_phone', 'loan_name']
    readonly_fields = ['original_loan_id', 'archived_at', 'top_up_history']
    inlines = [ArchivedPaymentInline]


# ==============================================================================
# CHIT FUNDS
# ==============================================================================

class ChitMemberInline(admin.TabularInline):
    model = ChitMember
    extra = 0
    fields = ['member_number', 'name', 'phone', 'is_active']


@admin.register(ChitGroup)
class ChitGroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'chit_amount', 'member_count', 'monthly_amount', 'start_month', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
    readonly_fields = ['monthly_amount', 'created_at', 'updated_at']
    inlines = [ChitMemberInline]


@admin.register(ChitPayment)
class ChitPaymentAdmin(admin.ModelAdmin):
    list_display = ['member', 'group', 'month', 'amount', 'payment_date']
    list_filter = ['group', 'month']
    search_fields = ['member__name']


@admin.register(ChitAuction)
class ChitAuctionAdmin(admin.ModelAdmin):
    list_display = ['group', 'month', 'slot_number', 'winner_name', 'bid_amount',
                   'commission', 'amount_to_winner']
    list_filter = ['group']
    readonly_fields = ['total_collected', 'amount_to_winner', 'carry_forward']


@admin.register(ChitMonthSettings)
class ChitMonthSettingsAdmin(admin.ModelAdmin):
    list_display = ['group', 'month', 'chit_number']
    list_filter = ['group']
