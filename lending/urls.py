from django.urls import path

from lending.views import (
    customer_list,
    customer_detail,
    customer_loans,
)

from lending.views.loan_views import (
    loan_create,
    loan_detail,
    loan_top_up,
    loan_close,
    loan_mark_defaulted,
    loan_archive,
    loan_overdue,
    payment_list,
    payment_delete,
    vaddi_calculator,
)

from lending.views.archive_views import (
    archived_loan_list,
    archived_loan_detail,
    archived_loan_restore,
)

from lending.views.chit_views import (
    chit_group_list,
    chit_group_detail,
    chit_group_slots,
    chit_group_auctions,
    chit_member_create,
    chit_member_delete,
    chit_payment_create,
    chit_payment_delete,
    chit_month_settings,
)

from lending.views.report_views import (
    health,
    stats,
    overdue_list,
    sunday_collection,
    daily_collection,
    export_payments,
)


app_name = "lending"

urlpatterns = [
    # =========================================================================
    # HEALTH / DASHBOARD
    # =========================================================================
    path('health/', health, name='health'),
    path('stats/', stats, name='stats'),

    # =========================================================================
    # CUSTOMERS
    # =========================================================================
    path('customers/', customer_list, name='customer_list'),
    path('customers/<uuid:customer_id>/', customer_detail, name='customer_detail'),
    path('customers/<uuid:customer_id>/loans/', customer_loans, name='customer_loans'),

    # =========================================================================
    # LOANS
    # =========================================================================
    path('loans/', loan_create, name='loan_create'),
    path('loans/<uuid:loan_id>/', loan_detail, name='loan_detail'),
    path('loans/<uuid:loan_id>/topup/', loan_top_up, name='loan_top_up'),
    path('loans/<uuid:loan_id>/close/', loan_close, name='loan_close'),
    path('loans/<uuid:loan_id>/default/', loan_mark_defaulted, name='loan_mark_defaulted'),
    path('loans/<uuid:loan_id>/archive/', loan_archive, name='loan_archive'),
    path('loans/<uuid:loan_id>/overdue/', loan_overdue, name='loan_overdue'),
    path('vaddi-calculator/', vaddi_calculator, name='vaddi_calculator'),

    # =========================================================================
    # PAYMENTS
    # =========================================================================
    path('payments/', payment_list, name='payment_list'),
    path('payments/<uuid:payment_id>/', payment_delete, name='payment_delete'),

    # =========================================================================
    # REPORTS
    # =========================================================================
    path('overdue/', overdue_list, name='overdue_list'),
    path('sunday-collections/', sunday_collection, name='sunday_collections'),
    path('daily-collections/', daily_collection, name='daily_collections'),
    path('export/payments.xlsx', export_payments, {'file_format': 'xlsx'}, name='export_payments_excel'),
    path('export/payments.csv', export_payments, {'file_format': 'csv'}, name='export_payments_csv'),

    # =========================================================================
    # ARCHIVE
    # =========================================================================
    path('archived-loans/', archived_loan_list, name='archived_loan_list'),
    path('archived-loans/<uuid:archive_id>/', archived_loan_detail, name='archived_loan_detail'),
    path('archived-loans/<uuid:archive_id>/restore/', archived_loan_restore, name='archived_loan_restore'),

    # =========================================================================
    # CHIT FUNDS
    # =========================================================================
    path('chit-groups/', chit_group_list, name='chit_group_list'),
    path('chit-groups/<uuid:group_id>/', chit_group_detail, name='chit_group_detail'),
    path('chit-groups/<uuid:group_id>/slots/', chit_group_slots, name='chit_group_slots'),
    path('chit-groups/<uuid:group_id>/auctions/', chit_group_auctions, name='chit_group_auctions'),
    path('chit-members/', chit_member_create, name='chit_member_create'),
    path('chit-members/<uuid:member_id>/', chit_member_delete, name='chit_member_delete'),
    path('chit-payments/', chit_payment_create, name='chit_payment_create'),
    path('chit-payments/<uuid:payment_id>/', chit_payment_delete, name='chit_payment_delete'),
    path('chit-settings/<uuid:group_id>/<str:month>/', chit_month_settings, name='chit_month_settings'),
]
