#!/usr/bin/env python3
"""
Storytel Provider Development Server
Runs Flask on port 3000 with debug on and rate limiting off
"""
from storytel_app import create_app

if __name__ == '__main__':
    app = create_app({'DISABLE_RATE_LIMITING': True})
    app.run(
        host='0.0.0.0',
        port=app.config['PORT'],
        debug=True,
        use_reloader=False
    )
