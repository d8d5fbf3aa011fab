"""Flask application with route handlers"""
from flask import Flask, jsonify, request, Response, send_file, stream_with_context
from flask_cors import CORS
import io
import os
import traceback

import stripe

from utils.auth import get_current_user, get_current_user_id
from utils.validation import sanitize_json_input, validate_enum
from utils.logger import log_error, log_warning, log_info
from utils.rate_limit import init_rate_limiter, RATE_LIMITS
from services import template_service, deal_service, memo_service
from services import chat_proxy_service, checkout_service, stripe_webhook_service, subscription_service

app = Flask(__name__)
CORS(app, resources={
    r"/*": {
        "origins": os.environ.get('CORS_ORIGINS', '*').split(','),
        "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        "allow_headers": ["Authorization", "X-Client-Info", "Apikey", "Content-Type"],
    }
})

# Initialize rate limiter
limiter = init_rate_limiter(app)

CHECKOUT_SCHEMA = {
    'price_id': {'type': 'string', 'max_length': 200},
    'success_url': {'type': 'url'},
    'cancel_url': {'type': 'url'},
}


def _error_response(e: ValueError):
    """Map a service ValueError to a JSON error: 404 for missing records, 400 otherwise"""
    message = str(e)
    status = 404 if message.lower().endswith('not found') else 400
    return jsonify({"error": message}), status


@app.route('/')
def home():
    return jsonify({
        "message": "Drasill Deal Memo API",
        "status": "running",
        "version": "1.0.0"
    })

@app.route('/health')
@limiter.exempt
def health_check():
    return jsonify({
        "status": "healthy",
        "message": "API is running successfully"
    })

# ============================================================================
# Templates
# ============================================================================

@app.route('/api/templates', methods=['GET'])
@limiter.limit(RATE_LIMITS['standard'])
def get_templates():
    """Get all document templates (templateGetAll)"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        templates = template_service.get_all_templates(user_id)
        return jsonify(templates), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error getting templates", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/templates', methods=['POST'])
@limiter.limit(RATE_LIMITS['moderate'])
def create_template():
    """Create a document template"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        template = template_service.create_template(user_id, data)
        return jsonify(template), 201
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error creating template", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/templates/seed', methods=['POST'])
@limiter.limit(RATE_LIMITS['moderate'])
def seed_templates():
    """Insert the built-in templates for a user without any"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        created = template_service.seed_default_templates(user_id)
        return jsonify(created), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error seeding templates", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/templates/<template_id>', methods=['GET'])
@limiter.limit(RATE_LIMITS['standard'])
def get_template(template_id):
    """Get a single template"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        template = template_service.get_template(user_id, template_id)
        return jsonify(template), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error getting template", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/templates/<template_id>', methods=['PUT'])
@limiter.limit(RATE_LIMITS['moderate'])
def update_template(template_id):
    """Update a template"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        template = template_service.update_template(user_id, template_id, data)
        return jsonify(template), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error updating template", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/templates/<template_id>', methods=['DELETE'])
@limiter.limit(RATE_LIMITS['moderate'])
def delete_template(template_id):
    """Delete a template"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        result = template_service.delete_template(user_id, template_id)
        return jsonify(result), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error deleting template", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/templates/<template_id>/duplicate', methods=['POST'])
@limiter.limit(RATE_LIMITS['moderate'])
def duplicate_template(template_id):
    """Copy a template as '<name> (Copy)'"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        template = template_service.duplicate_template(user_id, template_id)
        return jsonify(template), 201
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error duplicating template", error=e)
        return jsonify({"error": str(e)}), 500

# ============================================================================
# Deals & memos
# ============================================================================

@app.route('/api/deals', methods=['GET'])
@limiter.limit(RATE_LIMITS['standard'])
def list_deals():
    """List the user's deals, optionally filtered by stage"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        deals = deal_service.list_deals(user_id, stage=request.args.get('stage') or None)
        return jsonify(deals), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error listing deals", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/deals/<deal_id>', methods=['GET'])
@limiter.limit(RATE_LIMITS['standard'])
def get_deal(deal_id):
    """Get a single deal"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        deal = deal_service.get_deal(user_id, deal_id)
        return jsonify(deal), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error getting deal", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/deals/<deal_id>/memos', methods=['GET'])
@limiter.limit(RATE_LIMITS['standard'])
def get_memos_by_deal(deal_id):
    """Get memos previously generated for a deal (memoGetByDeal)"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        memos = memo_service.get_memos_by_deal(user_id, deal_id)
        return jsonify(memos), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error getting memos", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/memos/generate', methods=['POST'])
@limiter.limit(RATE_LIMITS['moderate'])
def generate_memo():
    """Create a draft memo from a template and deal (memoGenerate)"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        memo = memo_service.generate_memo(user_id, data)
        return jsonify(memo), 201
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error generating memo", traceback_str=traceback.format_exc())
        return jsonify({"error": str(e)}), 500

@app.route('/api/memos/<memo_id>', methods=['GET'])
@limiter.limit(RATE_LIMITS['standard'])
def get_memo(memo_id):
    """Get a single memo"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        memo = memo_service.get_memo(user_id, memo_id)
        return jsonify(memo), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error getting memo", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/memos/<memo_id>', methods=['PATCH'])
@limiter.limit(RATE_LIMITS['moderate'])
def update_memo(memo_id):
    """Update memo content, field maps or status (memoUpdate)"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        memo = memo_service.update_memo(user_id, memo_id, data)
        return jsonify(memo), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error updating memo", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/memos/<memo_id>', methods=['DELETE'])
@limiter.limit(RATE_LIMITS['moderate'])
def delete_memo(memo_id):
    """Delete a memo (memoDelete)"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        result = memo_service.delete_memo(user_id, memo_id)
        return jsonify(result), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error deleting memo", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/api/memos/<memo_id>/export', methods=['GET'])
@limiter.limit(RATE_LIMITS['moderate'])
def export_memo(memo_id):
    """Download a memo as md, docx or pdf (memoExport)"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        export_format = validate_enum(request.args.get('format', 'md'), list(memo_service.EXPORT_FORMATS),
                                      case_sensitive=False)
        if not export_format:
            return jsonify({"error": "Invalid export format. Use 'md', 'docx' or 'pdf'"}), 400

        file_bytes, filename, mimetype = memo_service.export_memo(user_id, memo_id, export_format)
        return send_file(
            io.BytesIO(file_bytes),
            mimetype=mimetype,
            as_attachment=True,
            download_name=filename
        )
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error exporting memo", traceback_str=traceback.format_exc())
        return jsonify({"error": str(e)}), 500

# ============================================================================
# Edge functions: chat relay, billing
# ============================================================================

@app.route('/functions/v1/chat', methods=['POST'])
@limiter.limit(RATE_LIMITS['chat'])
def chat_proxy():
    """Relay a chat completion request to OpenAI and stream the reply back verbatim"""
    try:
        if not get_current_user_id():
            return jsonify({"error": "Unauthorized"}), 401

        body = request.get_json(silent=True)
        if body is None:
            return jsonify({"error": "Invalid JSON body"}), 400

        upstream = chat_proxy_service.forward_chat_request(body)

        if not upstream.ok:
            details = upstream.text
            upstream.close()
            log_warning(f"OpenAI error {upstream.status_code}: {details[:500]}")
            return jsonify({"error": "OpenAI error", "details": details}), upstream.status_code

        def relay():
            try:
                for chunk in upstream.iter_content(chunk_size=None):
                    if chunk:
                        yield chunk
            finally:
                upstream.close()

        return Response(stream_with_context(relay()), mimetype='text/event-stream')
    except Exception as e:
        log_error("Error relaying chat request", error=e)
        return jsonify({"error": str(e)}), 500

@app.route('/functions/v1/create-checkout', methods=['POST'])
@limiter.limit(RATE_LIMITS['strict'])
def create_checkout():
    """Create a Stripe Checkout session for the subscription"""
    if not request.headers.get('Authorization'):
        return jsonify({"error": "Missing authorization header"}), 401

    user = get_current_user()
    if not user:
        return jsonify({"error": "Unauthorized"}), 401

    log_info(f"Authenticated user: {user.get('email')}")

    try:
        # Empty body is fine
        data = sanitize_json_input(request.get_json(silent=True) or {}, CHECKOUT_SCHEMA)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    # Failures past validation, missing Stripe config included, are 500s
    try:
        result = checkout_service.create_checkout_session(
            user,
            price_id=data.get('price_id'),
            success_url=data.get('success_url'),
            cancel_url=data.get('cancel_url'),
        )
        return jsonify(result), 200
    except Exception as e:
        log_error("Checkout error", traceback_str=traceback.format_exc())
        return jsonify({"error": str(e)}), 500

@app.route('/functions/v1/stripe-webhook', methods=['POST'])
@limiter.exempt
def stripe_webhook():
    """Handle Stripe webhook events to sync subscription status"""
    signature = request.headers.get('Stripe-Signature')
    if not signature or not stripe_webhook_service.STRIPE_WEBHOOK_SECRET:
        log_error("Missing signature or webhook secret")
        return jsonify({"error": "Missing signature"}), 400

    try:
        # Raw body is required for signature verification
        payload = request.get_data()
        event = stripe_webhook_service.construct_event(payload, signature)
        stripe_webhook_service.handle_event(event)
        return jsonify({"received": True}), 200
    except stripe.SignatureVerificationError as e:
        log_error("Invalid webhook signature", error=e)
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        log_error("Webhook error", traceback_str=traceback.format_exc())
        return jsonify({"error": str(e) or "Unknown error"}), 400

@app.route('/functions/v1/subscription-status', methods=['GET'])
@limiter.limit(RATE_LIMITS['standard'])
def subscription_status():
    """Report whether the user has an active or trialing subscription"""
    try:
        user_id = get_current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401

        status = subscription_service.get_subscription_status(user_id)
        return jsonify(status), 200
    except ValueError as e:
        return _error_response(e)
    except Exception as e:
        log_error("Error checking subscription", error=e)
        return jsonify({"error": str(e)}), 500

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_ENV') == 'development'
    app.run(host='0.0.0.0', port=port, debug=debug)
