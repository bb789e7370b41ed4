"""anning.integrations — External service gateway modules.

All outbound HTTP calls to third-party APIs go through a gateway in this
package, never via bare `requests` calls in services or blueprints.

Every gateway call is:
  - Retried with exponential backoff on network errors and 5xx
  - Bounded by a timeout
  - Logged with its outcome

Current gateways:
  paper_details_gateway.PaperDetailsGateway — paper metadata extraction endpoint
"""
