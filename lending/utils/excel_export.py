"""
Excel/CSV Export Utilities using Pandas
========================================

Payment tracker: one row per loan still owing, one column per payment date
"""

from django.http import HttpResponse
import pandas as pd
from io import BytesIO

from lending.utils.helpers import today


FIXED_COLUMNS = ['Date', 'Customer Name', 'Friend/Loan Name', 'Type', 'Periods']
TOTAL_COLUMN = 'Total Paid'


def create_excel_response(filename='report.xlsx'):
    """Create an HTTP response for Excel file download"""
    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def create_csv_response(filename='report.csv'):
    """Create an HTTP response for CSV file download"""
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def payment_tracker_dataframe(loans, as_of_date=None):
    """
    Payments-by-date matrix

    Args:
        loans: Loan queryset; loans without a balance are left out

    Returns:
        DataFrame with the fixed columns, one column per payment date
        (dd/mm/YYYY, oldest first) and the total paid per loan
    """
    as_of = as_of_date or today()
    loans = (
        loans.filter(balance__gt=0)
        .select_related('customer')
        .prefetch_related('payments')
        .order_by('customer__name', 'created_at')
    )

    rows = []
    all_dates = set()
    for loan in loans:
        by_date = {}
        payments = list(loan.payments.all())
        for payment in payments:
            by_date[payment.payment_date] = by_date.get(payment.payment_date, 0) + payment.amount
        all_dates.update(by_date)

        rows.append({
            'Date': as_of.strftime('%d/%m/%Y'),
            'Customer Name': loan.customer.name,
            'Friend/Loan Name': loan.loan_name,
            'Type': loan.get_period_unit_display(),
            'Periods': f"{len(payments)}/{loan.total_periods}",
            'by_date': by_date,
            TOTAL_COLUMN: loan.principal - loan.balance,
        })

    dates = sorted(all_dates)
    date_columns = [d.strftime('%d/%m/%Y') for d in dates]

    data = []
    for row in rows:
        record = {column: row[column] for column in FIXED_COLUMNS}
        for d, column in zip(dates, date_columns):
            record[column] = row['by_date'].get(d, 0)
        record[TOTAL_COLUMN] = row[TOTAL_COLUMN]
        data.append(record)

    return pd.DataFrame(data, columns=FIXED_COLUMNS + date_columns + [TOTAL_COLUMN])


def export_payment_tracker_excel(loans, label='All', as_of_date=None):
    """Export the payment tracker to Excel"""
    as_of = as_of_date or today()
    df = payment_tracker_dataframe(loans, as_of)

    output = BytesIO()
    writer = pd.ExcelWriter(output, engine='openpyxl')
    df.to_excel(writer, sheet_name='Payment Tracker', index=False)

    worksheet = writer.sheets['Payment Tracker']

    # Apply styling
    from openpyxl.styles import Font, PatternFill, Alignment
    from openpyxl.utils import get_column_letter

    # Header styling
    header_fill = PatternFill(start_color='D97706', end_color='D97706', fill_type='solid')
    header_font = Font(bold=True, color='FFFFFF', size=11)

    for col_num, col in enumerate(df.columns, 1):
        cell = worksheet.cell(row=1, column=col_num)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center')

    # Adjust column widths
    widths = [12, 20, 15, 10, 10] + [12] * (len(df.columns) - len(FIXED_COLUMNS) - 1) + [15]
    for col_num, width in enumerate(widths, 1):
        worksheet.column_dimensions[get_column_letter(col_num)].width = width

    # Number formatting for amount columns
    for row in range(2, len(df) + 2):
        for col_num in range(len(FIXED_COLUMNS) + 1, len(df.columns) + 1):
            worksheet.cell(row=row, column=col_num).number_format = '#,##0'

    # Save
    writer.close()
    output.seek(0)

    filename = f'{label}_Payment_Tracker_{as_of.isoformat()}.xlsx'
    response = create_excel_response(filename)
    response.write(output.read())
    return response


def export_payment_tracker_csv(loans, label='All', as_of_date=None):
    """Export the payment tracker to CSV"""
    as_of = as_of_date or today()
    df = payment_tracker_dataframe(loans, as_of)

    response = create_csv_response(f'{label}_Payment_Tracker_{as_of.isoformat()}.csv')
    df.to_csv(response, index=False)
    return response
