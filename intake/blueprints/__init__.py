"""
Site Intake
Blueprint registry.

    intake  /api/v1/intake    client surface, addressed by access token
    admin   /api/v1/admin     operator dashboard
    ai      /api/v1/ai        copy generation
    health  /api/v1/health    liveness and readiness checks
"""
