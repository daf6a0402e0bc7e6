"""
Routes package for Plastic Clever Schools Evidence Review

This package contains all route blueprints and initialization functions.
"""


def init_all_routes(app, csrf_instance=None):
    """Initialize all route blueprints"""

    # Import blueprint initialization functions
    from .evidence import init_evidence_routes
    from .admin import init_admin_routes
    from .requirements import init_requirements_routes
    from .schools import init_schools_routes
    from .files import init_files_routes

    # Initialize blueprints
    evidence_blueprint = init_evidence_routes(csrf_instance)
    admin_blueprint = init_admin_routes(csrf_instance)
    requirements_blueprint = init_requirements_routes(csrf_instance)
    schools_blueprint = init_schools_routes(csrf_instance)
    files_blueprint = init_files_routes(csrf_instance)

    # Register blueprints
    app.register_blueprint(evidence_blueprint)
    app.register_blueprint(admin_blueprint)
    app.register_blueprint(requirements_blueprint)
    app.register_blueprint(schools_blueprint)
    app.register_blueprint(files_blueprint)

    return {
        'evidence': evidence_blueprint,
        'admin': admin_blueprint,
        'requirements': requirements_blueprint,
        'schools': schools_blueprint,
        'files': files_blueprint,
    }
