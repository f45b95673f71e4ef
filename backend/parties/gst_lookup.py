"""
GST number lookup service.
Fetches registered business details for a GSTIN from the RapidAPI
GST Insights API so customer forms can be pre-filled.
"""
import logging
from typing import Any, Dict, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class GSTLookupError(Exception):
    """Lookup failed; status_code is the HTTP status to report to the client"""
    status_code = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class GSTLookupNotConfigured(GSTLookupError):
    status_code = 503


class GSTNumberNotFound(GSTLookupError):
    status_code = 404


def _build_address(details: Dict[str, Any]) -> str:
    parts = [
        details.get('buildingNumber'),
        details.get('buildingName'),
        details.get('street'),
        details.get('location'),
        details.get('locality'),
    ]
    return ', '.join(str(part).strip() for part in parts if part and str(part).strip())


def parse_gst_response(gst_number: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map the API payload to customer fields.

    The API returns `data` either as an object or as a one-element list.
    """
    if not isinstance(payload, dict) or not payload.get('success', True):
        raise GSTNumberNotFound(f"No details found for GST number {gst_number}")

    data = payload.get('data')
    if isinstance(data, list):
        data = data[0] if data else None
    if not data:
        raise GSTNumberNotFound(f"No details found for GST number {gst_number}")

    address_details = (data.get('principalAddress') or {}).get('address') or data
    legal_name = (data.get('legalName') or '').strip()
    trade_name = (data.get('tradeName') or '').strip()

    return {
        'gst_number': gst_number,
        'name': legal_name or trade_name,
        'company_name': trade_name or legal_name,
        'address': _build_address(address_details),
        'city': address_details.get('district') or address_details.get('location') or address_details.get('city') or '',
        'state': address_details.get('stateCode') or data.get('stateCode') or '',
        'pincode': str(address_details.get('pincode') or ''),
        'business_type': data.get('constitutionOfBusiness') or '',
        'status': data.get('status') or '',
    }


def lookup_gst_details(gst_number: str) -> Dict[str, Any]:
    """Fetch and parse the registered details for a GST number"""
    api_key = getattr(settings, 'GST_API_KEY', '')
    if not api_key:
        raise GSTLookupNotConfigured("GST lookup is not configured. Set GST_API_KEY.")

    url = f"{settings.GST_API_URL.rstrip('/')}/getGSTDetailsUsingGST/{gst_number}"
    headers = {
        'x-rapidapi-host': settings.GST_API_HOST,
        'x-rapidapi-key': api_key,
    }

    try:
        response = requests.get(url, headers=headers, timeout=getattr(settings, 'GST_API_TIMEOUT', 10))
    except requests.exceptions.Timeout:
        logger.warning(f"GST lookup timed out for {gst_number}")
        raise GSTLookupError("GST lookup service timed out")
    except requests.exceptions.RequestException as e:
        logger.error(f"GST lookup request failed for {gst_number}: {str(e)}")
        raise GSTLookupError("GST lookup service is unavailable")

    if response.status_code == 404:
        raise GSTNumberNotFound(f"No details found for GST number {gst_number}")
    if response.status_code != 200:
        logger.error(f"GST lookup returned HTTP {response.status_code} for {gst_number}")
        raise GSTLookupError(f"GST lookup failed with status {response.status_code}")

    try:
        payload = response.json()
    except ValueError:
        raise GSTLookupError("GST lookup returned an invalid response")

    return parse_gst_response(gst_number, payload)
