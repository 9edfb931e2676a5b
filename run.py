#!/usr/bin/env python3
"""Development server runner"""
import os
from rotator import create_app

if __name__ == '__main__':
    # Reads ./backup-rotator.conf unless ROTATOR_CONFIG is set
    app = create_app('development')

    port = int(os.environ.get('PORT', 5000))
    app.run(host='127.0.0.1', port=port, debug=True, use_reloader=False)
