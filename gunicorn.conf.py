# use in gunicorn as: env/bin/gunicorn conceptrepo.api:app -c gunicorn.conf.py
# Requests share no state, so any number of workers can serve the same repositories

# Workers
workers = 4
worker_class = 'uvicorn.workers.UvicornWorker'

# Socket
bind = 'localhost:5001'

# Logging
# loglevel = 'debug'
# accesslog = '/tmp/conceptrepo_access_log'
# errorlog =  '/tmp/conceptrepo_error_log'
