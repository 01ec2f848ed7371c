"""
Weather Readings API
====================

Backend for the weather-station-for-education project.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (users, weather readings, request bodies)
- services/  = The store wrapper and the services that query it
- routers/   = API endpoints plus the access-control dependencies
- utils/     = Parsing, time windows, response shaping
- main.py    = Puts it all together and starts the server
"""
