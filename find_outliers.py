import argparse

from aamfilter import AAMFilter
from aamfilter.io import (import_settings, import_image, import_points,
                          import_trilist, export_pass, export_result)


def parse_args():
    parser = argparse.ArgumentParser(
        description='Find the images of an annotated face dataset whose '
                    'appearance is inconsistent with the rest of it.')
    parser.add_argument('settings',
                        help="file with one 'image_path points_path' pair "
                             "per line")
    parser.add_argument('--trilist', required=True,
                        help='triangulation file, 3 one-based vertex indices '
                             'per line')
    parser.add_argument('--output', default=None,
                        help='directory for the inlier/outlier diagnostic '
                             'images')
    parser.add_argument('--strategy', choices=('loo', 'rpca'), default='loo',
                        help="'loo' (leave-one-out) or 'rpca' (robust PCA)")
    parser.add_argument('--metric', choices=('texture', 'fitting'),
                        default='texture',
                        help="'texture' (texture reconstruction error) or "
                             "'fitting' (image fitting error)")
    parser.add_argument('--inspect', action='store_true',
                        help='run a single inspection pass instead of the '
                             'iterative detection')
    parser.add_argument('--workers', type=int, default=None,
                        help='number of threads of the leave-one-out models')
    parser.add_argument('--verbose', action='store_true')
    return parser.parse_args()


def main():
    args = parse_args()

    pairs = import_settings(args.settings)
    images = [import_image(image_path) for image_path, _ in pairs]
    shapes = [import_points(points_path) for _, points_path in pairs]
    trilist = import_trilist(args.trilist)
    print('Loaded {} samples'.format(len(pairs)))

    aam_filter = AAMFilter(images, shapes, trilist, strategy=args.strategy,
                           metric=args.metric, n_workers=args.workers,
                           verbose=args.verbose)

    if args.inspect:
        detection_pass = aam_filter.inspect()
        print(detection_pass)
        inliers = detection_pass.inliers
        if args.output is not None:
            export_pass(detection_pass, args.output)
    else:
        result = aam_filter.find_inliers()
        print(result)
        inliers = result.inliers
        if args.output is not None:
            export_result(result, args.output)

    print('inliers: {}'.format(' '.join(str(i) for i in inliers)))


if __name__ == '__main__':
    main()
