#!/usr/bin/env python3
"""
Development server entry point for MeetSpark
"""

if __name__ == '__main__':
    print("🚀 Starting MeetSpark server...")
    from meetspark.app import create_app
    app = create_app()
    print("✅ App created successfully")
    print("🌐 Server starting on http://localhost:5000")
    app.run(debug=True, host='0.0.0.0', port=5000)
