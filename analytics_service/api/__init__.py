def register_blueprints(app):
    from analytics_service.api.history import bp as history_bp
    from analytics_service.api.analytics import bp as analytics_bp

    app.register_blueprint(history_bp)
    app.register_blueprint(analytics_bp)
