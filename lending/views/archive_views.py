"""
Archive Views
=============

Archived loans: list, detail, restore and permanent delete
"""

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from lending.models import ArchivedLoan
from lending.serializers import archived_loan_to_dict, loan_to_dict
from lending.views.helpers import api_view


@login_required
@require_http_methods(['GET'])
@api_view
def archived_loan_list(request):
    archived = ArchivedLoan.objects.search(request.GET.get('search', '').strip())
    if request.GET.get('written_off') == '1':
        archived = archived.written_off()
    return JsonResponse({'results': [archived_loan_to_dict(a) for a in archived]})


@login_required
@require_http_methods(['GET', 'DELETE'])
@api_view
def archived_loan_detail(request, archive_id):
    archived = ArchivedLoan.objects.fetch(archive_id)

    if request.method == 'DELETE':
        archived.delete_permanently()
        return JsonResponse({'deleted': True})

    return JsonResponse(archived_loan_to_dict(archived, detail=True))


@login_required
@require_http_methods(['POST'])
@api_view
def archived_loan_restore(request, archive_id):
    archived = ArchivedLoan.objects.fetch(archive_id)
    loan = archived.restore()
    return JsonResponse(loan_to_dict(loan, detail=True))
