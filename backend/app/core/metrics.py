"""Prometheus metrics for the application"""
from prometheus_client import Counter, REGISTRY

# Payment intent metrics
try:
    payment_intents_counter = Counter(
        'swapit_payment_intents_total',
        'Total number of boost payment intent requests',
        ['status']
    )
except ValueError:
    payment_intents_counter = REGISTRY._names_to_collectors.get('swapit_payment_intents_total')

try:
    bookkeeping_failures_counter = Counter(
        'swapit_payment_bookkeeping_failures_total',
        'Payment intents created at the provider whose local records failed to persist'
    )
except ValueError:
    bookkeeping_failures_counter = REGISTRY._names_to_collectors.get('swapit_payment_bookkeeping_failures_total')

# Webhook metrics
try:
    webhook_events_counter = Counter(
        'swapit_webhook_events_total',
        'Total number of payment provider webhook events received',
        ['event_type', 'status']
    )
except ValueError:
    webhook_events_counter = REGISTRY._names_to_collectors.get('swapit_webhook_events_total')

# Boost metrics
try:
    boost_state_changes_counter = Counter(
        'swapit_boost_state_changes_total',
        'Total number of boost activations and deactivations',
        ['boost_type', 'state']
    )
except ValueError:
    boost_state_changes_counter = REGISTRY._names_to_collectors.get('swapit_boost_state_changes_total')
