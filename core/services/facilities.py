import math
from typing import Optional

from core.models import HealthcareFacility

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def nearby(lat: float, lng: float, radius_km: float = 50, limit: int = 20,
           emergency_only: bool = False) -> list[tuple[HealthcareFacility, float]]:
    """Active facilities within ``radius_km``, nearest first."""
    qs = HealthcareFacility.objects.filter(is_active=True, latitude__isnull=False, longitude__isnull=False)
    if emergency_only:
        qs = qs.filter(has_emergency=True)
    hits = []
    for facility in qs:
        d = haversine_km(lat, lng, float(facility.latitude), float(facility.longitude))
        if d <= radius_km:
            hits.append((facility, d))
    hits.sort(key=lambda pair: pair[1])
    return hits[:limit]


def facility_dict(f: HealthcareFacility, distance_km: Optional[float] = None) -> dict:
    data = {
        'id': f.id,
        'code': f.code,
        'name': f.name,
        'type': f.type,
        'level': f.level,
        'latitude': float(f.latitude) if f.latitude is not None else None,
        'longitude': float(f.longitude) if f.longitude is not None else None,
        'address': f.address,
        'city': f.city,
        'province': f.province,
        'region': f.region,
        'phone': f.phone,
        'email': f.email,
        'emergency_services': f.has_emergency,
        'open_24_hours': f.is_24_7,
        'bed_capacity': f.bed_capacity,
        'icu_capacity': f.icu_capacity,
        'current_bed_availability': f.current_bed_availability,
        'is_accredited': f.is_accredited,
        'accepts_referrals': f.accepts_referrals,
    }
    if distance_km is not None:
        data['distance_km'] = round(distance_km, 2)
    return data
