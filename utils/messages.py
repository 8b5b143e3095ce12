"""
Centralized Spanish UI messages.
All user-facing text in Spanish for consistency.
"""

MESSAGES = {
    # Success messages
    'login_success': 'Bienvenido, administrador',
    'logout_success': 'Sesión cerrada correctamente',
    'reservation_created': 'Toldo #{tent_id} reservado por {minutes} minutos',
    'reservation_confirmed': 'Reserva confirmada',
    'holds_expired': '{count} reservas vencidas liberadas',
    'state_updated': 'Cambios guardados',
    'state_seeded': 'Estado inicial creado',

    # Error messages
    'invalid_pin': 'PIN inválido',
    'unauthorized': 'No autorizado',
    'permission_denied': 'No tiene permisos para esta acción',
    'tent_not_found': 'Toldo no encontrado',
    'tent_unavailable': 'Ese toldo no está disponible.',
    'reservation_not_found': 'Reserva no encontrada',
    'reservation_not_pending': 'La reserva no está pendiente',
    'reservation_expired': 'La reserva ha vencido',
    'store_unavailable': 'Servicio de almacenamiento no disponible',
    'invalid_request': 'Solicitud inválida',
    'not_found': 'Recurso no encontrado',
    'method_not_allowed': 'Method Not Allowed',
    'server_error': 'Error interno del servidor',

    # Log entries (shared document 'logs')
    'log_reserve': 'Reservar toldo #{tent_id}',
    'log_expire': 'Purgar reservas vencidas',
    'log_confirm': 'Confirmar reserva {reservation_id}',
    'log_move_tent': 'Mover toldo #{tent_id}',
    'log_tent_state': 'Cambiar estado toldo #{tent_id}',
    'log_tent_price': 'Editar precio toldo #{tent_id}',
    'log_toggle_edit': 'Toggle edición',
    'log_recreate_grid': 'Recrear rejilla ({count} toldos)',
    'log_background': 'Cambiar fondo',
    'log_payments': 'Cambiar pagos',
    'log_pin': 'Cambiar PIN',
    'log_refresh': 'Refrescar mapa',
    'log_categories': 'Editar extras',

    # Tent states
    'state_available': 'Disponible',
    'state_pending': 'En proceso',
    'state_occupied': 'Ocupado',
    'state_blocked': 'Bloqueado',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get message with optional formatting.

    Args:
        key: Message key
        **kwargs: Format parameters

    Returns:
        Formatted message or key if not found
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
