"""Service labels and defaults recognised by the webhook."""

# Service labels
LABEL_ENABLED = "swarm.webhook.enabled"
LABEL_NAME = "swarm.webhook.name"
LABEL_REPLICAS = "swarm.webhook.replicas"

# Exact value that opts a service in
ENABLED_VALUE = "true"

DEFAULT_REPLICAS = 1
RESTART_REPLICAS = 1

# Replicas label policies
POLICY_FALLBACK = "fallback"
POLICY_STRICT = "strict"
REPLICAS_LABEL_POLICIES = (POLICY_FALLBACK, POLICY_STRICT)

# Start strategies. Both start at the replicas label (default 1); redeploy
# first forces running services down to 0 and re-inspects them.
STRATEGY_SCALE = "scale"
STRATEGY_REDEPLOY = "redeploy"
START_STRATEGIES = (STRATEGY_SCALE, STRATEGY_REDEPLOY)
