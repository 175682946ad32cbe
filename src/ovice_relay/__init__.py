"""oVice relay: forward webhook messages into Mattermost as a bot."""
