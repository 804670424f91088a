"""Route registration and blueprint management"""


def register_routes(app):
    """Register all application blueprints"""
    from .misc import misc_bp
    from .pricing import pricing_bp
    from .filings import filings_bp
    from .payment import payment_bp
    from .registry import registry_bp

    # Register blueprints
    app.register_blueprint(misc_bp)  # No prefix for misc routes
    app.register_blueprint(pricing_bp, url_prefix='/pricing')
    app.register_blueprint(filings_bp, url_prefix='/filings')
    app.register_blueprint(payment_bp, url_prefix='/payment')
    app.register_blueprint(registry_bp, url_prefix='/registry')
