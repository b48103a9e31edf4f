"""
LOGISTICS - District Zone Map

Static lookup from a district (city-suffixed form, e.g. "Carabayllo (Lima)")
to its pricing tier and to the zone group used as default route name for
motorized-driver assignment.

The tables are built once at import time and are read-only.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class PricingTier:
    HIGH = 'high'
    MID = 'mid'
    BASE = 'base'


# Distant districts (highest commission)
HIGH_TIER_DISTRICTS = frozenset([
    'Carabayllo (Lima)',
    'Ventanilla (Callao)',
    'Puente Piedra (Lima)',
])

MID_TIER_DISTRICTS = frozenset([
    'Comas (Lima)',
    'Villa El Salvador (Lima)',
    'Villa María del Triunfo (Lima)',
    'Oquendo (Callao)',
    'Santa Clara (Ate, Lima)',
])

# Declaration order matters: a district listed in two groups resolves to
# the first one (San Juan de Lurigancho -> EST).
ZONE_GROUPS: Mapping[str, frozenset] = MappingProxyType({
    'NOR': frozenset([
        'Carabayllo (Lima)', 'Comas (Lima)', 'Independencia (Lima)',
        'Los Olivos (Lima)', 'Puente Piedra (Lima)', 'San Martín de Porres (Lima)',
        'Santa Rosa (Callao)', 'Ventanilla (Callao)', 'Mi Perú (Callao)',
        'Oquendo (Callao)',
    ]),
    'SUR': frozenset([
        'San Borja (Lima)', 'Barranco (Lima)', 'Chorrillos (Lima)', 'Lurín (Lima)',
        'San Juan de Miraflores (Lima)', 'Surco (Lima)', 'Surquillo (Lima)',
        'Villa El Salvador (Lima)', 'Villa María del Triunfo (Lima)',
    ]),
    'EST': frozenset([
        'La Molina (Lima)', 'Ate (Lima)', 'Chaclacayo (Lima)', 'Huachipa (Ate, Lima)',
        'San Juan de Lurigancho (Lima)', 'Santa Anita (Lima)', 'Santa Clara (Ate, Lima)',
    ]),
    'OES': frozenset([
        'Magdalena del Mar (Lima)', 'Lince (Lima)', 'Pueblo Libre (Lima)',
        'Bellavista (Callao)', 'San Miguel (Lima)', 'Callao (Callao)',
        'Carmen de la Legua (Callao)', 'La Perla (Callao)', 'La Punta (Callao)',
    ]),
    'SJL': frozenset([
        'San Juan de Lurigancho (Lima)',
    ]),
})

ZONE_GROUP_CODES: Tuple[str, ...] = tuple(ZONE_GROUPS)

# Districts offered by the order form that belong to no zone group
UNGROUPED_DISTRICTS = frozenset([
    'Cercado de Lima (Lima)', 'Breña (Lima)', 'La Victoria (Lima)', 'Rímac (Lima)',
    'Jesús María (Lima)', 'San Isidro (Lima)', 'Miraflores (Lima)',
    'San Luis (Lima)', 'El Agustino (Lima)', 'Cieneguilla (Lima)',
    'Pachacámac (Lima)',
])


class DistrictZoneMap:
    """
    Immutable district -> (tier, zone group) lookup.

    Unknown districts are `base` tier with no group; callers fall back to
    a manual-assignment placeholder.
    """

    def __init__(self, high=HIGH_TIER_DISTRICTS, mid=MID_TIER_DISTRICTS,
                 groups: Mapping[str, frozenset] = ZONE_GROUPS):
        tiers = {district: PricingTier.MID for district in mid}
        tiers.update({district: PricingTier.HIGH for district in high})
        self._tiers = MappingProxyType(tiers)

        district_groups = {}
        for code, members in groups.items():
            for district in members:
                district_groups.setdefault(district, code)
        self._groups = MappingProxyType(district_groups)

    def tier_for(self, district: Optional[str]) -> str:
        return self._tiers.get(district or '', PricingTier.BASE)

    def zone_group_for(self, district: Optional[str]) -> Optional[str]:
        return self._groups.get(district or '')

    def districts(self) -> list:
        """Known districts, sorted (order form catalogue)."""
        return sorted(set(self._tiers) | set(self._groups) | UNGROUPED_DISTRICTS)


default_zone_map = DistrictZoneMap()
