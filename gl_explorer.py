import os
import sys
import json
import logging
import argparse

from explorer_app import services
from explorer_app.gitlab_client import GitLabClient, GitLabError

DEFAULT_URL = "https://gitlab.com"


def print_groups(groups):
    for group in groups:
        print(f"Group: {group.name} ({group.path})")
        if not group.projects:
            print("  No projects")
        for project in group.projects:
            print(f"  Project: {project.name} [{project.id}]")
            print(f"    Latest tag: {project.latest_tag or 'none'}")
            if not project.refs:
                print("    No refs")
            for ref in project.refs:
                print(f"      {ref}")
        print("-" * 40)


def print_jobs(jobs, indent):
    for job in jobs:
        print(f"{' ' * indent}{job.name} (ID: {job.id}, Status: {job.status}, Stage: {job.stage})")


def print_pipeline(pipeline, url=None):
    if pipeline.error:
        print(f"{pipeline.ref}: {pipeline.error}")
        return
    print(f"Pipeline ID: {pipeline.id}, Status: {pipeline.status}, Ref: {pipeline.ref}")
    if url:
        print(f"URL: {url}")
    print_jobs(pipeline.jobs, 2)
    if not pipeline.bridges:
        print("  Bridges: none")
    for bridge in pipeline.bridges:
        print(f"  Bridge: {bridge.name} (ID: {bridge.id}, Status: {bridge.status})")
        if not bridge.downstream_jobs:
            print("    Jobs: none")
        print_jobs(bridge.downstream_jobs, 4)


def groups(client, args):
    try:
        resolved = services.resolve_groups(client, args.groups)
    except services.RootGroupError as exc:
        if args.json:
            print(json.dumps([group.to_dict() for group in exc.groups], indent=2))
        else:
            print_groups(exc.groups)
        raise
    if args.json:
        print(json.dumps([group.to_dict() for group in resolved], indent=2))
    else:
        print_groups(resolved)


def pipeline(client, args):
    info = services.resolve_pipeline(client, args.project, args.ref)
    if args.json:
        print(json.dumps(info.to_dict(), indent=2))
    else:
        print_pipeline(info)


def pipeline_url(client, args):
    info, url = services.resolve_pipeline_url(client, args.project, args.ref)
    if args.json:
        print(json.dumps({**info.to_dict(), "url": url}, indent=2))
    else:
        print_pipeline(info, url)


def job(client, args):
    services.execute_action(client, args.project, args.job, args.action)
    print(f"Job {args.job}: {args.action} ok")


def tags(client, args):
    found = services.list_tags(client, args.project)
    if args.json:
        print(json.dumps([tag.to_dict() for tag in found], indent=2))
        return
    if not found:
        print("No tags.")
    for tag in found:
        print(f"{tag.name} {tag.commit[:8]}")


def tag_create(client, args):
    tag = services.create_tag(client, args.project, args.name, args.ref)
    print(f"Created tag {tag.name} at {tag.commit[:8]}")


def tag_delete(client, args):
    services.delete_tag(client, args.project, args.name)
    print(f"Deleted tag {args.name}")


COMMANDS = {
    'groups': groups,
    'pipeline': pipeline,
    'pipeline-url': pipeline_url,
    'job': job,
    'tags': tags,
    'tag-create': tag_create,
    'tag-delete': tag_delete,
}

# option each command cannot run without
REQUIRED = {
    'groups': ['groups'],
    'pipeline': ['project', 'ref'],
    'pipeline-url': ['project', 'ref'],
    'job': ['project', 'job', 'action'],
    'tags': ['project'],
    'tag-create': ['project', 'name', 'ref'],
    'tag-delete': ['project', 'name'],
}


def build_parser():
    parser = argparse.ArgumentParser(description="Browse GitLab group trees and pipelines")
    parser.add_argument('command', choices=list(COMMANDS), help='gl_explorer commands')
    parser.add_argument('-g', '--groups', type=int, action='append', help='Root group id (repeatable)')
    parser.add_argument('-p', '--project', type=int, help='Project id')
    parser.add_argument('-r', '--ref', type=str, help='Branch name, or tag:<name>')
    parser.add_argument('-j', '--job', type=int, help='Job id')
    parser.add_argument('-a', '--action', type=str, help='Job action: play, retry or cancel')
    parser.add_argument('-n', '--name', type=str, help='Tag name')
    parser.add_argument('--token', type=str, default=os.environ.get('GITLAB_TOKEN', ''), help='Personal access token')
    parser.add_argument('--url', type=str, default=os.environ.get('GITLAB_URL', DEFAULT_URL), help='GitLab base URL')
    parser.add_argument('--timeout', type=float, default=float(os.environ.get('GITLAB_TIMEOUT', '30')))
    parser.add_argument('--json', action='store_true', help='Print JSON instead of text')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every GitLab request')
    return parser


def main(argv=None, client=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    for option in REQUIRED[args.command]:
        if getattr(args, option) is None:
            parser.error(f"{args.command} requires --{option}")
    if client is None and not args.token:
        parser.error('a token is required (--token or GITLAB_TOKEN)')

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='[%(levelname)-7s] %(message)s')
    if client is None:
        client = GitLabClient(args.token, args.url, timeout=args.timeout)

    with client:
        try:
            COMMANDS[args.command](client, args)
        except (services.ExplorerError, GitLabError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
