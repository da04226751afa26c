# accounts/views.py
import logging

from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from telehealthproj.http import BadRequest, error_response, optional_str, read_json_object
from .services import sign_up

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def sign_up_view(request):
    try:
        payload = read_json_object(request)
        email = optional_str(payload, 'email', '').strip().lower()
        password = optional_str(payload, 'password', '')
        full_name = optional_str(payload, 'full_name', '')
        phone = optional_str(payload, 'phone')
    except BadRequest as e:
        return error_response(str(e), 400)

    if not email or not password or not full_name.strip():
        return error_response("Name, email and password are required.", 400)

    if get_user_model().objects.filter(username=email).exists():
        return error_response("An account with this email already exists.", 400)

    user = sign_up(email, password, full_name, phone)
    return JsonResponse({"status": "success", "user_id": user.pk}, status=201)
