from .customer_views import (
    customer_list,
    customer_detail,
    customer_loans,
)

from .loan_views import (
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

from .archive_views import (
    archived_loan_list,
    archived_loan_detail,
    archived_loan_restore,
)

from .chit_views import (
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

from .report_views import (
    health,
    stats,
    overdue_list,
    sunday_collection,
    daily_collection,
    export_payments,
)
